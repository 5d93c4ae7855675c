"""
Table and column operations for the Coda MCP Server.
"""

from fastmcp.exceptions import ToolError

from coda_mcp.api import helpers
from coda_mcp.types import Table
from coda_mcp.utils import format_value, log

# Rows shown in full by analyze_table
ANALYZE_PREVIEW_ROWS = 3


def _format_table(table: Table) -> str:
    row_count = table.row_count if table.row_count is not None else "N/A"
    return (
        f"**{table.name}** (ID: {table.id})\n"
        f"   Type: {table.table_type or 'N/A'}\n"
        f"   Rows: {row_count}"
    )


async def list_tables(doc_id: str) -> str:
    """
    List all tables and views in a Coda document.

    Args:
        doc_id: The ID of the doc

    Returns:
        Formatted list of tables
    """
    client = helpers.get_coda_client()
    log(f"Listing tables in doc {doc_id}")

    try:
        tables = await client.list_tables(doc_id)
    except Exception as e:
        raise helpers.api_error("list tables", e, resource="Document")

    if not tables:
        return "No tables found in this document."

    return f"Found {len(tables)} table(s):\n\n" + "\n\n".join(
        f"• {_format_table(table)}" for table in tables
    )


async def get_table(doc_id: str, table_id: str) -> str:
    """Get details of a single table."""
    client = helpers.get_coda_client()
    log(f"Getting table {table_id} in doc {doc_id}")

    try:
        table = await client.get_table(doc_id, table_id)
    except Exception as e:
        raise helpers.api_error("get table", e, resource="Table")

    return (
        f"Table: {_format_table(table)}\n"
        f"   URL: {table.browser_link or 'N/A'}"
    )


async def find_table(doc_id: str, name: str) -> str:
    """Find a table by (partial, case-insensitive) name."""
    client = helpers.get_coda_client()
    log(f"Finding table by name in doc {doc_id}: {name}")

    try:
        table = await client.find_table_by_name(doc_id, name)
    except Exception as e:
        raise helpers.api_error("search tables", e, resource="Document")

    if table is None:
        return f'No table found matching: "{name}"'

    return f"Found table: {_format_table(table)}"


async def create_table(
    doc_id: str, name: str, columns: list[dict | str] | None = None
) -> str:
    """
    Create a new table in a Coda document.

    Args:
        doc_id: The ID of the doc
        name: Name of the new table
        columns: Column definitions as accepted by the Coda API; plain strings
            are taken as column names

    Returns:
        Confirmation with the new table's ID
    """
    client = helpers.get_coda_client()
    log(f"Creating table '{name}' in doc {doc_id} with {len(columns or [])} column(s)")

    if not name or not name.strip():
        raise ToolError("A table name is required.")

    columns = [
        {"name": column} if isinstance(column, str) else column for column in columns or []
    ]

    try:
        result = await client.create_table(doc_id, name, columns)
    except Exception as e:
        raise helpers.api_error("create table", e, resource="Document")

    return (
        f"✓ Table created successfully\n"
        f"   ID: {result.get('id', 'N/A')}\n"
        f"   Name: {result.get('name', name)}"
    )


async def list_columns(doc_id: str, table_id: str) -> str:
    """List the columns of a table."""
    client = helpers.get_coda_client()
    log(f"Listing columns of table {table_id} in doc {doc_id}")

    try:
        columns = await client.list_columns(doc_id, table_id)
    except Exception as e:
        raise helpers.api_error("list columns", e, resource="Table")

    if not columns:
        return "No columns found in this table."

    lines = [f"Found {len(columns)} column(s):", ""]
    for column in columns:
        flags = []
        if column.display:
            flags.append("display column")
        if column.calculated:
            flags.append("calculated")
        suffix = f" [{', '.join(flags)}]" if flags else ""
        lines.append(f"• **{column.name}** (ID: {column.id}){suffix}")
        lines.append(f"   Type: {column.format_type or 'N/A'}")
    return "\n".join(lines)


async def analyze_table(doc_id: str, table_id: str, limit: int = 10) -> str:
    """
    Sample rows from a table to describe its structure and data.

    Args:
        doc_id: The ID of the doc
        table_id: Table ID or exact table name
        limit: Number of rows to sample

    Returns:
        Column list, sample size and a preview of the first rows
    """
    client = helpers.get_coda_client()
    log(f"Analyzing table {table_id} in doc {doc_id} (sample: {limit})")

    if limit <= 0:
        raise ToolError("limit must be a positive number of rows.")

    try:
        tables = await client.list_tables(doc_id)
        rows = await client.list_rows(doc_id, table_id, limit=limit, use_column_names=True)
    except Exception as e:
        raise helpers.api_error("analyze table", e, resource="Table")

    table = helpers.match_table(tables, table_id)
    table_name = table.name if table else table_id

    if not rows:
        return f'Table "{table_name}" is empty or has no accessible data.'

    columns = list(rows[0].values.keys())
    total_rows = table.row_count if table and table.row_count is not None else "Unknown"

    analysis = f"**Table Analysis: {table_name}**\n\n"
    analysis += f"• **Columns** ({len(columns)}): {', '.join(columns)}\n"
    analysis += f"• **Sample Size**: {len(rows)} rows\n"
    analysis += f"• **Total Rows**: {total_rows}\n\n"
    analysis += "**Sample Data**:\n"

    for index, row in enumerate(rows[:ANALYZE_PREVIEW_ROWS]):
        analysis += f"\n**Row {index + 1}** (ID: {row.id}):\n"
        for column, value in row.values.items():
            analysis += f"  • {column}: {format_value(value, indent=2)}\n"

    if len(rows) > ANALYZE_PREVIEW_ROWS:
        analysis += f"\n... and {len(rows) - ANALYZE_PREVIEW_ROWS} more rows available"

    return analysis

