"""
Command-line interface for Coda API operations.

Usage: coda-mcp <command> [args...]

Requires the CODA_API_KEY environment variable.
"""

import argparse
import asyncio
import json
import sys
from collections.abc import Awaitable, Callable, Sequence

from fastmcp.exceptions import ToolError

from coda_mcp.api import docs, pages, rows, tables
from coda_mcp.config import ConfigError, CodaConfig

EXAMPLES = """
Examples:
  coda-mcp list-docs
  coda-mcp find-doc "My Project"
  coda-mcp list-rows doc123 grid456 10
  coda-mcp insert-row doc123 grid456 '{"Name":"John","Status":"Active"}'
  coda-mcp create-page doc123 '{"name":"New Page","subtitle":"Created via CLI"}'
  cat notes.md | coda-mcp update-page-content doc123 canvas-789 - append

Environment:
  CODA_API_KEY - Your Coda API key (required)

Get your API key: https://coda.io/account
"""

API_KEY_HELP = """To get your API key:
1. Go to https://coda.io/account
2. Generate an API token
3. Run: export CODA_API_KEY="your-api-key"
"""


def json_object(value: str) -> dict:
    """argparse type for a JSON object argument."""
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError as e:
        raise argparse.ArgumentTypeError(f"invalid JSON: {e}")
    if not isinstance(parsed, dict):
        raise argparse.ArgumentTypeError("expected a JSON object")
    return parsed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="coda-mcp",
        description="Coda MCP Client CLI",
        epilog=EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", metavar="<command>")
    subparsers.required = True

    def command(name: str, help: str, *positionals: str) -> argparse.ArgumentParser:
        sub = subparsers.add_parser(name, help=help)
        for positional in positionals:
            sub.add_argument(positional)
        return sub

    # Document operations
    command("list-docs", "List all accessible docs")
    command("get-doc", "Get document details", "doc_id")
    command("find-doc", "Find document by name", "name")

    # Table operations
    command("list-tables", "List tables in a doc", "doc_id")
    command("get-table", "Get table details", "doc_id", "table_id")
    command("find-table", "Find table by name", "doc_id", "name")
    create_table = command("create-table", "Create new table", "doc_id")
    create_table.add_argument(
        "table", type=json_object, help='Table JSON, e.g. {"name": "Tasks", "columns": [...]}'
    )
    command("list-columns", "List columns in a table", "doc_id", "table_id")

    # Row operations
    list_rows = command("list-rows", "List rows in a table", "doc_id", "table_id")
    list_rows.add_argument("limit", nargs="?", type=int)
    command("get-row", "Get specific row", "doc_id", "table_id", "row_id")
    insert_row = command("insert-row", "Insert new row", "doc_id", "table_id")
    insert_row.add_argument("cells", type=json_object, help="Cell values as a JSON object")
    update_row = command("update-row", "Update row", "doc_id", "table_id", "row_id")
    update_row.add_argument("cells", type=json_object, help="Cell values as a JSON object")
    command("delete-row", "Delete row", "doc_id", "table_id", "row_id")
    command("search-rows", "Search rows", "doc_id", "table_id", "column", "value")

    # Page operations
    command("list-pages", "List pages in a doc", "doc_id")
    command("get-page", "Get page details", "doc_id", "page_id")
    create_page = command("create-page", "Create new page", "doc_id")
    create_page.add_argument(
        "page", type=json_object, help='Page JSON, e.g. {"name": "Notes", "pageContent": "..."}'
    )
    update_content = command(
        "update-page-content", "Update page content", "doc_id", "page_id", "content"
    )
    update_content.add_argument("mode", nargs="?", default="replace", choices=["replace", "append"])
    update_content.add_argument("format", nargs="?", default="markdown", choices=["markdown", "html"])
    update_metadata = command("update-page-metadata", "Update page metadata", "doc_id", "page_id")
    update_metadata.add_argument("metadata", type=json_object, help="Metadata as a JSON object")

    return parser


def _read_content(content: str) -> str:
    # '-' reads the content from stdin
    return sys.stdin.read() if content == "-" else content


def _dispatch(args: argparse.Namespace) -> Awaitable[str]:
    handlers: dict[str, Callable[[], Awaitable[str]]] = {
        "list-docs": lambda: docs.list_docs(),
        "get-doc": lambda: docs.get_doc(args.doc_id),
        "find-doc": lambda: docs.find_doc(args.name),
        "list-tables": lambda: tables.list_tables(args.doc_id),
        "get-table": lambda: tables.get_table(args.doc_id, args.table_id),
        "find-table": lambda: tables.find_table(args.doc_id, args.name),
        "create-table": lambda: tables.create_table(
            args.doc_id, args.table.get("name", ""), args.table.get("columns")
        ),
        "list-columns": lambda: tables.list_columns(args.doc_id, args.table_id),
        "list-rows": lambda: rows.list_rows(args.doc_id, args.table_id, args.limit),
        "get-row": lambda: rows.get_row(args.doc_id, args.table_id, args.row_id),
        "insert-row": lambda: rows.insert_row(args.doc_id, args.table_id, args.cells),
        "update-row": lambda: rows.update_row(args.doc_id, args.table_id, args.row_id, args.cells),
        "delete-row": lambda: rows.delete_row(args.doc_id, args.table_id, args.row_id),
        "search-rows": lambda: rows.search_data(args.doc_id, args.table_id, args.column, args.value),
        "list-pages": lambda: pages.list_pages(args.doc_id),
        "get-page": lambda: pages.get_page(args.doc_id, args.page_id),
        "create-page": lambda: pages.create_page(
            args.doc_id,
            args.page.get("name", ""),
            content=args.page.get("pageContent") or args.page.get("content"),
            subtitle=args.page.get("subtitle"),
            parent_page_id=args.page.get("parentPageId"),
            icon_name=args.page.get("iconName"),
        ),
        "update-page-content": lambda: pages.update_page_content(
            args.doc_id, args.page_id, _read_content(args.content), args.mode, args.format
        ),
        "update-page-metadata": lambda: pages.update_page_metadata(
            args.doc_id,
            args.page_id,
            name=args.metadata.get("name"),
            subtitle=args.metadata.get("subtitle"),
            icon_name=args.metadata.get("iconName"),
            image_url=args.metadata.get("imageUrl"),
        ),
    }
    return handlers[args.command]()


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    if argv is None:
        argv = sys.argv[1:]
    if not argv:
        parser.print_help(sys.stderr)
        return 1

    args = parser.parse_args(argv)

    try:
        CodaConfig.from_env()
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        if "CODA_API_KEY" in str(e):
            print("", file=sys.stderr)
            print(API_KEY_HELP, file=sys.stderr)
        return 1

    try:
        print(asyncio.run(_dispatch(args)))
    except ToolError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
