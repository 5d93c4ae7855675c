"""
Page operations for the Coda MCP Server.

Handles listing, creating and editing pages. Large content is written in
chunks (see coda_mcp.chunking).
"""

from fastmcp.exceptions import ToolError

from coda_mcp.api import helpers
from coda_mcp.types import ContentFormat, InsertionMode, PartialUploadError
from coda_mcp.utils import log


def _parse_directives(mode: str, format: str) -> tuple[InsertionMode, ContentFormat]:
    try:
        return InsertionMode.parse(mode), ContentFormat.parse(format)
    except ValueError as e:
        raise ToolError(str(e))


async def list_pages(doc_id: str) -> str:
    """
    List all pages in a Coda document.

    Args:
        doc_id: The ID of the doc

    Returns:
        Formatted list of pages
    """
    client = helpers.get_coda_client()
    log(f"Listing pages in doc {doc_id}")

    try:
        pages = await client.list_pages(doc_id)
    except Exception as e:
        raise helpers.api_error("list pages", e, resource="Document")

    if not pages:
        return "No pages found in this document."

    return f"Found {len(pages)} page(s):\n\n" + "\n\n".join(
        f"• **{page.name}** (ID: {page.id})\n"
        f"  Subtitle: {page.subtitle or 'None'}\n"
        f"  Parent: {page.parent_page_id or 'None'}\n"
        f"  URL: {page.browser_link or 'N/A'}"
        for page in pages
    )


async def get_page(doc_id: str, page_id: str) -> str:
    """Get details of a single page."""
    client = helpers.get_coda_client()
    log(f"Getting page {page_id} in doc {doc_id}")

    try:
        page = await client.get_page(doc_id, page_id)
    except Exception as e:
        raise helpers.api_error("get page", e, resource="Page")

    return (
        f"Page: **{page.name}**\n"
        f"ID: {page.id}\n"
        f"Type: {page.page_type or 'N/A'}\n"
        f"Subtitle: {page.subtitle or 'None'}\n"
        f"Parent: {page.parent_page_id or 'None'}\n"
        f"URL: {page.browser_link or 'N/A'}"
    )


async def create_page(
    doc_id: str,
    name: str,
    content: str | None = None,
    subtitle: str | None = None,
    parent_page_id: str | None = None,
    icon_name: str | None = None,
    format: str = "markdown",
) -> str:
    """
    Create a page and optionally fill it with content.

    The page is reported as created even when its content fails to upload;
    the page ID is returned so the content can be written afterwards.

    Args:
        doc_id: The ID of the doc
        name: Page name
        content: Optional initial content
        subtitle: Optional page subtitle
        parent_page_id: Optional parent page, to create a subpage
        icon_name: Optional icon name
        format: Content format ('markdown' or 'html')

    Returns:
        Confirmation with the page ID and content status
    """
    client = helpers.get_coda_client()
    log(f"Creating page '{name}' in doc {doc_id}")

    if not name or not name.strip():
        raise ToolError("A page name is required.")
    _, content_format = _parse_directives("replace", format)

    try:
        creation = await client.create_page_with_content(
            doc_id,
            name,
            content=content,
            subtitle=subtitle,
            content_format=content_format,
            parent_page_id=parent_page_id,
            icon_name=icon_name,
        )
    except Exception as e:
        raise helpers.api_error("create page", e, resource="Document")

    page = creation.page
    result = (
        f"✓ Page created successfully!\n\n"
        f"• **Name**: {name}\n"
        f"• **ID**: {page.id}\n"
        f"• **Subtitle**: {subtitle or 'None'}\n"
    )

    error = creation.content_error
    if error is not None:
        if isinstance(error, PartialUploadError):
            details = helpers.partial_upload_message(error, page.id)
        else:
            details = (
                f"Failed to upload - try using coda_update_page_content "
                f"with pageId: {page.id}\n• **Error**: {error}"
            )
        return result + f"• **Content**: {details}"

    if creation.upload is None:
        return result + "• **Content**: Empty page created"

    upload = creation.upload
    method = f" in {upload.total_chunks} chunks" if upload.chunked else ""
    return result + f"• **Content**: Added successfully ({upload.content_length} characters{method})"


async def update_page_content(
    doc_id: str,
    page_id: str,
    content: str,
    mode: str = "replace",
    format: str = "markdown",
) -> str:
    """
    Replace or append to the content of a page.

    Content longer than the chunk size is uploaded in chunks. If a chunk
    fails, the error reports how many chunks were written so the rest can be
    appended.

    Args:
        doc_id: The ID of the doc
        page_id: The ID of the page
        content: New content
        mode: 'replace' or 'append'
        format: 'markdown' or 'html'

    Returns:
        Confirmation with the upload method used
    """
    client = helpers.get_coda_client()
    insertion_mode, content_format = _parse_directives(mode, format)
    log(
        f"Updating content of page {page_id} in doc {doc_id}: "
        f"{len(content)} characters, mode: {insertion_mode.value}"
    )

    try:
        upload = await client.update_page_content(
            doc_id, page_id, content, insertion_mode, content_format
        )
    except PartialUploadError as e:
        log(f"Partial content update of page {page_id}: {e}")
        raise ToolError(helpers.partial_upload_message(e, page_id))
    except Exception as e:
        raise helpers.api_error("update page content", e, resource="Page")

    method = f"Chunked upload ({upload.total_chunks} chunks)" if upload.chunked else "Direct upload"
    return (
        f"✓ Page content updated successfully!\n\n"
        f"• **Page ID**: {page_id}\n"
        f"• **Mode**: {insertion_mode.value}\n"
        f"• **Format**: {content_format.value}\n"
        f"• **Content Length**: {upload.content_length} characters\n"
        f"• **Method**: {method}"
    )


async def update_page_metadata(
    doc_id: str,
    page_id: str,
    name: str | None = None,
    subtitle: str | None = None,
    icon_name: str | None = None,
    image_url: str | None = None,
) -> str:
    """Rename a page or change its subtitle, icon or cover image."""
    client = helpers.get_coda_client()
    log(f"Updating metadata of page {page_id} in doc {doc_id}")

    if not any([name, subtitle, icon_name, image_url]):
        raise ToolError("Provide at least one of name, subtitle, icon_name or image_url.")

    try:
        await client.update_page_metadata(
            doc_id, page_id, name=name, subtitle=subtitle, icon_name=icon_name, image_url=image_url
        )
    except Exception as e:
        raise helpers.api_error("update page metadata", e, resource="Page")

    changes = [
        f"• **{label}**: {value}"
        for label, value in (
            ("Name", name),
            ("Subtitle", subtitle),
            ("Icon", icon_name),
            ("Image", image_url),
        )
        if value
    ]
    return f"✓ Page metadata updated successfully!\n\n• **Page ID**: {page_id}\n" + "\n".join(changes)
