"""
Helper functions shared by the Coda API operations.
"""

from fastmcp.exceptions import ToolError

from coda_mcp.client import CodaClient, get_client
from coda_mcp.config import ConfigError
from coda_mcp.types import CodaApiError, PartialUploadError, Table
from coda_mcp.utils import log


def get_coda_client() -> CodaClient:
    """
    Get the shared Coda client for a tool call.

    Raises:
        ToolError: If the client isn't configured
    """
    try:
        return get_client()
    except ConfigError as e:
        raise ToolError(f"Error: {e}. Please configure it in your MCP client configuration.")


def api_error(action: str, error: Exception, resource: str = "Resource") -> ToolError:
    """
    Translate an exception from the Coda client into a ToolError.

    Args:
        action: What was being attempted, e.g. 'list tables'
        error: The exception raised
        resource: Name of the thing looked up, used in 'not found' messages

    Returns:
        ToolError to raise
    """
    error_message = str(error)
    log(f"Error trying to {action}: {error_message}")

    status_code = error.status_code if isinstance(error, CodaApiError) else None
    if status_code == 401:
        return ToolError(
            "Authentication failed. Check that CODA_API_KEY is valid "
            "(generate a new token at https://coda.io/account)."
        )
    if status_code == 403:
        return ToolError(
            "Permission denied. Make sure the API token has access to this doc."
        )
    if status_code == 404:
        return ToolError(f"{resource} not found. Check the ID.")
    if status_code == 429:
        return ToolError("Rate limited by the Coda API. Wait a moment and try again.")
    if isinstance(error, (ValueError, TypeError)):
        return ToolError(f"Invalid input: {error_message}")

    return ToolError(f"Failed to {action}: {error_message}")


def partial_upload_message(error: PartialUploadError, page_id: str) -> str:
    """Describe a partially written page and how to finish it."""
    return (
        f"Content upload stopped after {error.chunks_succeeded} of "
        f"{error.total_chunks} chunks: {error.cause}\n"
        f"The page {page_id} holds the first {error.chunks_succeeded} chunk(s). "
        f"To finish, append the remaining content starting from chunk "
        f"{error.chunks_succeeded + 1} with coda_update_page_content (mode: append)."
    )


def match_table(tables: list[Table], table_id_or_name: str) -> Table | None:
    """Pick the table whose ID or exact name is table_id_or_name."""
    for table in tables:
        if table.id == table_id_or_name or table.name == table_id_or_name:
            return table
    return None
