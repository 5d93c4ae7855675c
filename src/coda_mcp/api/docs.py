"""
Document operations for the Coda MCP Server.

Handles listing, looking up and searching Coda docs.
"""

from coda_mcp.api import helpers
from coda_mcp.types import Doc
from coda_mcp.utils import format_date, log


def _format_doc(doc: Doc) -> str:
    return (
        f"**{doc.name}**\n"
        f"   ID: {doc.id}\n"
        f"   URL: {doc.browser_link or 'N/A'}\n"
        f"   Created: {format_date(doc.created_at)}"
    )


async def list_docs(query: str | None = None, max_results: int | None = None) -> str:
    """
    List Coda documents accessible to the API token.

    Args:
        query: Optional search term to filter docs by name
        max_results: Maximum number of docs to return

    Returns:
        Formatted list of documents
    """
    client = helpers.get_coda_client()
    log(f"Listing Coda docs. Query: {query or 'none'}, Max: {max_results or 'default'}")

    try:
        docs = await client.list_docs(query=query, limit=max_results)
    except Exception as e:
        raise helpers.api_error("list documents", e)

    if not docs:
        return "No Coda documents found."

    result = f"Found {len(docs)} Coda document(s):\n\n"
    for index, doc in enumerate(docs):
        result += f"{index + 1}. {_format_doc(doc)}\n\n"

    return result


async def get_doc(doc_id: str) -> str:
    """
    Get details of a single Coda document.

    Args:
        doc_id: The ID of the doc

    Returns:
        Formatted document details
    """
    client = helpers.get_coda_client()
    log(f"Getting Coda doc: {doc_id}")

    try:
        doc = await client.get_doc(doc_id)
    except Exception as e:
        raise helpers.api_error("get document", e, resource="Document")

    return (
        f"Document: **{doc.name}**\n"
        f"ID: {doc.id}\n"
        f"URL: {doc.browser_link or 'N/A'}\n"
        f"Owner: {doc.owner or 'Unknown'}\n"
        f"Created: {format_date(doc.created_at)}\n"
        f"Updated: {format_date(doc.updated_at)}"
    )


async def find_doc(name: str) -> str:
    """
    Find a Coda document by (partial, case-insensitive) name.

    Args:
        name: Document name or part of it

    Returns:
        Formatted details of the first match, or a not-found message
    """
    client = helpers.get_coda_client()
    log(f"Finding Coda doc by name: {name}")

    try:
        doc = await client.find_doc_by_name(name)
    except Exception as e:
        raise helpers.api_error("search documents", e)

    if doc is None:
        return f'No document found matching: "{name}"'

    return f"Found document: {_format_doc(doc)}"
