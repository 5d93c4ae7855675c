"""
Row operations for the Coda MCP Server.

Handles listing, reading, inserting, updating, deleting and searching rows.
Row values are keyed by column name.
"""

import json
from typing import Any

from fastmcp.exceptions import ToolError

from coda_mcp.api import helpers
from coda_mcp.types import Row
from coda_mcp.utils import format_value, log

# Matches shown in full by search_data
SEARCH_PREVIEW_ROWS = 5


def _format_row_values(row: Row, indent: str = "  ") -> str:
    if not row.values:
        return f"{indent}(no values)\n"
    return "".join(
        f"{indent}{column}: {format_value(value)}\n" for column, value in row.values.items()
    )


def _require_values(values: dict[str, Any]) -> None:
    if not isinstance(values, dict) or not values:
        raise ToolError("Row data must be a non-empty object of column names to values.")


async def list_rows(
    doc_id: str, table_id: str, limit: int | None = None, query: str | None = None
) -> str:
    """
    List rows of a table.

    Args:
        doc_id: The ID of the doc
        table_id: Table ID or name
        limit: Maximum number of rows to return
        query: Optional Coda row query, e.g. '"Status":"Done"'

    Returns:
        Formatted rows with their values
    """
    client = helpers.get_coda_client()
    log(f"Listing rows of table {table_id} in doc {doc_id}. Limit: {limit or 'default'}")

    try:
        rows = await client.list_rows(
            doc_id, table_id, limit=limit, use_column_names=True, query=query
        )
    except Exception as e:
        raise helpers.api_error("list rows", e, resource="Table")

    if not rows:
        return "No rows found in this table."

    result = f"Found {len(rows)} row(s):\n"
    for index, row in enumerate(rows):
        result += f"\nRow {index + 1} (ID: {row.id}):\n{_format_row_values(row)}"
    return result


async def get_row(doc_id: str, table_id: str, row_id: str) -> str:
    """Get a single row with its values."""
    client = helpers.get_coda_client()
    log(f"Getting row {row_id} of table {table_id} in doc {doc_id}")

    try:
        row = await client.get_row(doc_id, table_id, row_id)
    except Exception as e:
        raise helpers.api_error("get row", e, resource="Row")

    return f"Row details (ID: {row.id}):\n{_format_row_values(row)}"


async def insert_row(
    doc_id: str,
    table_id: str,
    values: dict[str, Any],
    key_columns: list[str] | None = None,
) -> str:
    """
    Insert a row into a table.

    With key_columns, a row matching on those columns is updated instead
    (upsert).
    """
    client = helpers.get_coda_client()
    log(f"Inserting row into table {table_id} in doc {doc_id}")
    _require_values(values)

    try:
        result = await client.insert_row(doc_id, table_id, values, key_columns)
    except Exception as e:
        raise helpers.api_error("insert row", e, resource="Table")

    added = result.get("addedRowIds") or []
    row_id = added[0] if added else "Unknown"

    return (
        f"✓ Row inserted successfully!\n\n"
        f"• **Row ID**: {row_id}\n"
        f"• **Data**: {json.dumps(values, indent=2)}"
    )


async def update_row(doc_id: str, table_id: str, row_id: str, values: dict[str, Any]) -> str:
    """Update cells of an existing row."""
    client = helpers.get_coda_client()
    log(f"Updating row {row_id} of table {table_id} in doc {doc_id}")
    _require_values(values)

    try:
        await client.update_row(doc_id, table_id, row_id, values)
    except Exception as e:
        raise helpers.api_error("update row", e, resource="Row")

    return (
        f"✓ Row updated successfully!\n\n"
        f"• **Row ID**: {row_id}\n"
        f"• **Updated Data**: {json.dumps(values, indent=2)}"
    )


async def delete_row(doc_id: str, table_id: str, row_id: str) -> str:
    """Delete a row."""
    client = helpers.get_coda_client()
    log(f"Deleting row {row_id} of table {table_id} in doc {doc_id}")

    try:
        await client.delete_row(doc_id, table_id, row_id)
    except Exception as e:
        raise helpers.api_error("delete row", e, resource="Row")

    return f"✓ Row {row_id} deleted successfully."


async def search_data(doc_id: str, table_id: str, column: str, value: str) -> str:
    """
    Search a table for rows whose column matches value.

    Text cells match on a case-insensitive substring. The matching cell is
    shown in bold.
    """
    client = helpers.get_coda_client()
    log(f"Searching table {table_id} in doc {doc_id} for '{value}' in column '{column}'")

    try:
        results = await client.search_rows(doc_id, table_id, column, value)
    except Exception as e:
        raise helpers.api_error("search rows", e, resource="Table")

    if not results:
        return f'No results found for "{value}" in column "{column}"'

    output = f"**Search Results**: Found {len(results)} matching row(s)\n"
    output += f'**Query**: "{value}" in column "{column}"\n\n'

    for index, row in enumerate(results[:SEARCH_PREVIEW_ROWS]):
        output += f"**Result {index + 1}** (ID: {row.id}):\n"
        for col, cell in row.values.items():
            display = format_value(cell)
            if col == column and value.lower() in str(cell).lower():
                display = f"**{display}**"
            output += f"  • {col}: {display}\n"
        output += "\n"

    if len(results) > SEARCH_PREVIEW_ROWS:
        output += f"... and {len(results) - SEARCH_PREVIEW_ROWS} more result(s)"

    return output
