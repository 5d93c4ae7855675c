"""
Coda MCP Server

Main MCP server entry point with all tool definitions.
Uses FastMCP framework for MCP protocol implementation.

IMPORTANT: All logging must use stderr, never stdout.
The MCP protocol uses stdout for JSON-RPC communication.
"""

from typing import Annotated, Any

from fastmcp import FastMCP

from coda_mcp.api import docs, pages, rows, tables
from coda_mcp.utils import log


# Create MCP server
mcp = FastMCP(
    name="Coda MCP Server",
    instructions="""
    This MCP server provides tools for reading and editing Coda docs.

    Key capabilities:
    - List, get and find Coda documents
    - List, inspect, analyze and create tables; list columns
    - List, read, insert, update, delete and search rows
    - List, read and create pages; replace or append page content

    Row data is passed as an object of column names to values.
    Large page content is uploaded automatically in chunks. If a chunked
    upload stops partway, the error says how many chunks were written;
    append the remaining content with coda_update_page_content (mode: append).
    """,
)


# === DOCUMENT TOOLS ===


@mcp.tool(annotations={"readOnlyHint": True})
async def coda_list_docs(
    query: Annotated[str | None, "Optional search term to filter docs by name"] = None,
    max_results: Annotated[int | None, "Maximum number of docs to return"] = None,
) -> str:
    """
    List all accessible Coda documents.
    """
    return await docs.list_docs(query, max_results)


@mcp.tool(annotations={"readOnlyHint": True})
async def coda_get_doc(
    doc_id: Annotated[str, "Coda document ID"],
) -> str:
    """
    Get details of a Coda document (name, owner, link, dates).
    """
    return await docs.get_doc(doc_id)


@mcp.tool(annotations={"readOnlyHint": True})
async def coda_find_doc(
    name: Annotated[str, "Document name or partial name to search for"],
) -> str:
    """
    Find a Coda document by name (case-insensitive partial match).
    """
    return await docs.find_doc(name)


# === TABLE TOOLS ===


@mcp.tool(annotations={"readOnlyHint": True})
async def coda_list_tables(
    doc_id: Annotated[str, "Coda document ID"],
) -> str:
    """
    List all tables in a Coda document.
    """
    return await tables.list_tables(doc_id)


@mcp.tool(annotations={"readOnlyHint": True})
async def coda_get_table(
    doc_id: Annotated[str, "Coda document ID"],
    table_id: Annotated[str, "Table ID or name"],
) -> str:
    """
    Get details of a table (type, row count, link).
    """
    return await tables.get_table(doc_id, table_id)


@mcp.tool(annotations={"readOnlyHint": True})
async def coda_find_table(
    doc_id: Annotated[str, "Coda document ID"],
    name: Annotated[str, "Table name or partial name to search for"],
) -> str:
    """
    Find a table in a Coda document by name (case-insensitive partial match).
    """
    return await tables.find_table(doc_id, name)


@mcp.tool()
async def coda_create_table(
    doc_id: Annotated[str, "Coda document ID"],
    name: Annotated[str, "Name of the new table"],
    columns: Annotated[
        list[str] | None, "Column names for the new table"
    ] = None,
) -> str:
    """
    Create a new table in a Coda document.
    """
    return await tables.create_table(doc_id, name, columns)


@mcp.tool(annotations={"readOnlyHint": True})
async def coda_list_columns(
    doc_id: Annotated[str, "Coda document ID"],
    table_id: Annotated[str, "Table ID or name"],
) -> str:
    """
    List the columns of a table with their types.
    """
    return await tables.list_columns(doc_id, table_id)


@mcp.tool(annotations={"readOnlyHint": True})
async def coda_analyze_table(
    doc_id: Annotated[str, "Coda document ID"],
    table_id: Annotated[str, "Table ID or name"],
    limit: Annotated[int, "Number of rows to sample"] = 10,
) -> str:
    """
    Get sample data and structure from a Coda table for analysis.

    Shows the columns, the sample size, the total row count and the first
    few sampled rows.
    """
    return await tables.analyze_table(doc_id, table_id, limit)


# === ROW TOOLS ===


@mcp.tool(annotations={"readOnlyHint": True})
async def coda_list_rows(
    doc_id: Annotated[str, "Coda document ID"],
    table_id: Annotated[str, "Table ID or name"],
    limit: Annotated[int | None, "Maximum number of rows to return"] = None,
    query: Annotated[
        str | None, "Optional row filter in Coda's format, e.g. '\"Status\":\"Done\"'"
    ] = None,
) -> str:
    """
    List rows in a table, with values keyed by column name.
    """
    return await rows.list_rows(doc_id, table_id, limit, query)


@mcp.tool(annotations={"readOnlyHint": True})
async def coda_get_row(
    doc_id: Annotated[str, "Coda document ID"],
    table_id: Annotated[str, "Table ID or name"],
    row_id: Annotated[str, "Row ID or name"],
) -> str:
    """
    Get a single row of a table.
    """
    return await rows.get_row(doc_id, table_id, row_id)


@mcp.tool()
async def coda_insert_row(
    doc_id: Annotated[str, "Coda document ID"],
    table_id: Annotated[str, "Table ID or name"],
    data: Annotated[dict[str, Any], "Row data as key-value pairs using column names"],
    key_columns: Annotated[
        list[str] | None,
        "Columns identifying an existing row; when given, a matching row is updated instead",
    ] = None,
) -> str:
    """
    Insert a new row into a Coda table.
    """
    return await rows.insert_row(doc_id, table_id, data, key_columns)


@mcp.tool()
async def coda_update_row(
    doc_id: Annotated[str, "Coda document ID"],
    table_id: Annotated[str, "Table ID or name"],
    row_id: Annotated[str, "Row ID to update"],
    data: Annotated[dict[str, Any], "Updated row data as key-value pairs"],
) -> str:
    """
    Update an existing row in a Coda table.
    """
    return await rows.update_row(doc_id, table_id, row_id, data)


@mcp.tool(annotations={"destructiveHint": True})
async def coda_delete_row(
    doc_id: Annotated[str, "Coda document ID"],
    table_id: Annotated[str, "Table ID or name"],
    row_id: Annotated[str, "Row ID to delete"],
) -> str:
    """
    Delete a row from a Coda table.
    """
    return await rows.delete_row(doc_id, table_id, row_id)


@mcp.tool(annotations={"readOnlyHint": True})
async def coda_search_data(
    doc_id: Annotated[str, "Coda document ID"],
    table_id: Annotated[str, "Table ID or name"],
    column: Annotated[str, "Column name to search in"],
    value: Annotated[str, "Value to search for"],
) -> str:
    """
    Search for specific data in a Coda table.

    Text values match on a case-insensitive substring.
    """
    return await rows.search_data(doc_id, table_id, column, value)


# === PAGE TOOLS ===


@mcp.tool(annotations={"readOnlyHint": True})
async def coda_list_pages(
    doc_id: Annotated[str, "Coda document ID"],
) -> str:
    """
    List all pages in a Coda document.
    """
    return await pages.list_pages(doc_id)


@mcp.tool(annotations={"readOnlyHint": True})
async def coda_get_page(
    doc_id: Annotated[str, "Coda document ID"],
    page_id: Annotated[str, "Page ID or name"],
) -> str:
    """
    Get details of a page.
    """
    return await pages.get_page(doc_id, page_id)


@mcp.tool()
async def coda_create_page(
    doc_id: Annotated[str, "Coda document ID"],
    name: Annotated[str, "Page name"],
    content: Annotated[str | None, "Page content in markdown format"] = None,
    subtitle: Annotated[str | None, "Optional page subtitle"] = None,
    parent_page_id: Annotated[
        str | None, "Optional parent page ID, to create a subpage"
    ] = None,
    icon_name: Annotated[str | None, "Optional icon name, e.g. 'rocket'"] = None,
) -> str:
    """
    Create a new page in a Coda document.

    Content of any length is supported; large content is uploaded in chunks.
    If the content upload fails the page still exists and its ID is returned.
    """
    return await pages.create_page(
        doc_id, name, content, subtitle, parent_page_id, icon_name
    )


@mcp.tool()
async def coda_update_page_content(
    doc_id: Annotated[str, "Coda document ID"],
    page_id: Annotated[str, "Page ID to update"],
    content: Annotated[str, "New content in markdown format"],
    mode: Annotated[str, "Insert mode: 'replace' or 'append'"] = "replace",
    format: Annotated[str, "Content format: 'markdown' or 'html'"] = "markdown",
) -> str:
    """
    Update content of an existing page.

    Large content is uploaded in chunks: the first replaces the page content
    and the rest are appended.
    """
    return await pages.update_page_content(doc_id, page_id, content, mode, format)


@mcp.tool()
async def coda_update_page_metadata(
    doc_id: Annotated[str, "Coda document ID"],
    page_id: Annotated[str, "Page ID to update"],
    name: Annotated[str | None, "New page name"] = None,
    subtitle: Annotated[str | None, "New page subtitle"] = None,
    icon_name: Annotated[str | None, "New icon name"] = None,
    image_url: Annotated[str | None, "New cover image URL"] = None,
) -> str:
    """
    Rename a page or change its subtitle, icon or cover image.
    """
    return await pages.update_page_metadata(
        doc_id, page_id, name, subtitle, icon_name, image_url
    )


def main() -> None:
    """Run the Coda MCP Server."""
    log("Starting Coda MCP Server...")
    mcp.run()


if __name__ == "__main__":
    main()
