"""
Coda API client.

Wraps the Coda REST API (https://coda.io/developers/apis/v1) with httpx and
converts responses into the record types in coda_mcp.types.
"""

import asyncio
from typing import Any

import httpx

from coda_mcp.chunking import upload_content
from coda_mcp.config import CodaConfig
from coda_mcp.types import (
    CodaApiError,
    Column,
    ContentFormat,
    Doc,
    InsertionMode,
    Page,
    PageCreation,
    PartialUploadError,
    Row,
    Table,
    UploadResult,
)
from coda_mcp.utils import log


def cells_from_mapping(values: dict[str, Any]) -> list[dict[str, Any]]:
    """Convert a {column: value} mapping into Coda's cell list format."""
    return [{"column": column, "value": value} for column, value in values.items()]


class CodaClient:
    """Async client for the Coda API."""

    def __init__(self, config: CodaConfig, transport: httpx.AsyncBaseTransport | None = None):
        self.config = config
        self._transport = transport

    async def request(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict:
        """
        Make a request to the Coda API.

        Args:
            method: HTTP method
            endpoint: Path below the API root, e.g. '/docs'
            params: Query parameters (None values are dropped)
            json: JSON request body

        Returns:
            Parsed JSON response body

        Raises:
            CodaApiError: On transport errors, non-2xx responses and unparseable bodies
        """
        if params:
            params = {key: value for key, value in params.items() if value is not None}

        try:
            async with httpx.AsyncClient(
                base_url=self.config.base_url,
                headers=self.config.headers,
                timeout=self.config.timeout,
                transport=self._transport,
            ) as client:
                response = await client.request(method, endpoint, params=params, json=json)
        except httpx.HTTPError as e:
            log(f"Coda API request failed: {method} {endpoint}: {e}")
            raise CodaApiError(f"Request to Coda API failed: {e}")

        try:
            data = response.json() if response.content else {}
        except ValueError:
            if response.is_success:
                raise CodaApiError(
                    f"Parse Error: invalid JSON in response. Response: {response.text[:500]}",
                    status_code=response.status_code,
                )
            data = {}

        if not response.is_success:
            message = data.get("message") if isinstance(data, dict) else None
            raise CodaApiError(
                f"API Error {response.status_code}: {message or response.text or response.reason_phrase}",
                status_code=response.status_code,
            )

        return data

    # --- Documents ---

    async def list_docs(self, query: str | None = None, limit: int | None = None) -> list[Doc]:
        response = await self.request("GET", "/docs", params={"query": query, "limit": limit})
        return [Doc.from_api(item) for item in response.get("items", [])]

    async def get_doc(self, doc_id: str) -> Doc:
        return Doc.from_api(await self.request("GET", f"/docs/{doc_id}"))

    async def find_doc_by_name(self, name: str) -> Doc | None:
        """Find the first document whose name contains name (case-insensitive)."""
        needle = name.lower()
        for doc in await self.list_docs():
            if needle in doc.name.lower():
                return doc
        return None

    # --- Tables & Columns ---

    async def list_tables(self, doc_id: str) -> list[Table]:
        response = await self.request("GET", f"/docs/{doc_id}/tables")
        return [Table.from_api(item) for item in response.get("items", [])]

    async def get_table(self, doc_id: str, table_id: str) -> Table:
        return Table.from_api(await self.request("GET", f"/docs/{doc_id}/tables/{table_id}"))

    async def find_table_by_name(self, doc_id: str, name: str) -> Table | None:
        """Find the first table whose name contains name (case-insensitive)."""
        needle = name.lower()
        for table in await self.list_tables(doc_id):
            if needle in table.name.lower():
                return table
        return None

    async def create_table(self, doc_id: str, name: str, columns: list[dict] | None = None) -> dict:
        data = {"name": name, "columns": columns or []}
        return await self.request("POST", f"/docs/{doc_id}/tables", json=data)

    async def list_columns(self, doc_id: str, table_id: str) -> list[Column]:
        response = await self.request("GET", f"/docs/{doc_id}/tables/{table_id}/columns")
        return [Column.from_api(item) for item in response.get("items", [])]

    # --- Rows ---

    async def list_rows(
        self,
        doc_id: str,
        table_id: str,
        limit: int | None = None,
        use_column_names: bool = False,
        query: str | None = None,
    ) -> list[Row]:
        params = {
            "limit": limit,
            "useColumnNames": "true" if use_column_names else None,
            "query": query,
        }
        response = await self.request(
            "GET", f"/docs/{doc_id}/tables/{table_id}/rows", params=params
        )
        return [Row.from_api(item) for item in response.get("items", [])]

    async def get_row(
        self, doc_id: str, table_id: str, row_id: str, use_column_names: bool = True
    ) -> Row:
        params = {"useColumnNames": "true" if use_column_names else None}
        return Row.from_api(
            await self.request(
                "GET", f"/docs/{doc_id}/tables/{table_id}/rows/{row_id}", params=params
            )
        )

    async def insert_row(
        self,
        doc_id: str,
        table_id: str,
        values: dict[str, Any],
        key_columns: list[str] | None = None,
    ) -> dict:
        """
        Insert a row (or upsert, when key_columns is given).

        Returns:
            API response, including 'addedRowIds' for inserted rows
        """
        data: dict[str, Any] = {"rows": [{"cells": cells_from_mapping(values)}]}
        if key_columns:
            data["keyColumns"] = key_columns
        return await self.request("POST", f"/docs/{doc_id}/tables/{table_id}/rows", json=data)

    async def update_row(
        self, doc_id: str, table_id: str, row_id: str, values: dict[str, Any]
    ) -> dict:
        data = {"row": {"cells": cells_from_mapping(values)}}
        return await self.request(
            "PUT", f"/docs/{doc_id}/tables/{table_id}/rows/{row_id}", json=data
        )

    async def delete_row(self, doc_id: str, table_id: str, row_id: str) -> dict:
        return await self.request("DELETE", f"/docs/{doc_id}/tables/{table_id}/rows/{row_id}")

    async def search_rows(
        self, doc_id: str, table_id: str, column: str, value: str
    ) -> list[Row]:
        """
        Find rows whose value in column matches value.

        Text cells match on a case-insensitive substring; other cells match on
        their string form.
        """
        rows = await self.list_rows(doc_id, table_id, use_column_names=True)
        needle = value.lower()
        matches = []
        for row in rows:
            cell = row.values.get(column)
            if isinstance(cell, str):
                if needle in cell.lower():
                    matches.append(row)
            elif cell is not None and str(cell) == value:
                matches.append(row)
        return matches

    # --- Pages ---

    async def list_pages(self, doc_id: str) -> list[Page]:
        response = await self.request("GET", f"/docs/{doc_id}/pages")
        return [Page.from_api(item) for item in response.get("items", [])]

    async def get_page(self, doc_id: str, page_id: str) -> Page:
        return Page.from_api(await self.request("GET", f"/docs/{doc_id}/pages/{page_id}"))

    async def create_page(
        self,
        doc_id: str,
        name: str,
        subtitle: str | None = None,
        icon_name: str | None = None,
        image_url: str | None = None,
        parent_page_id: str | None = None,
    ) -> Page:
        data = {"name": name}
        optional = {
            "subtitle": subtitle,
            "iconName": icon_name,
            "imageUrl": image_url,
            "parentPageId": parent_page_id,
        }
        data.update({key: value for key, value in optional.items() if value})
        response = await self.request("POST", f"/docs/{doc_id}/pages", json=data)
        # Page creation is asynchronous on Coda's side and only echoes the new ID
        response.setdefault("name", name)
        if subtitle:
            response.setdefault("subtitle", subtitle)
        return Page.from_api(response)

    async def write_page_content(
        self,
        doc_id: str,
        page_id: str,
        content: str,
        mode: InsertionMode | str = InsertionMode.REPLACE,
        content_format: ContentFormat | str = ContentFormat.MARKDOWN,
    ) -> dict:
        """
        Make a single page content write. Only 'replace' is idempotent.
        """
        mode = InsertionMode.parse(mode)
        content_format = ContentFormat.parse(content_format)
        data = {
            "contentUpdate": {
                "insertionMode": mode.value,
                "canvasContent": {"format": content_format.value, "content": content},
            }
        }
        return await self.request("PUT", f"/docs/{doc_id}/pages/{page_id}", json=data)

    async def update_page_content(
        self,
        doc_id: str,
        page_id: str,
        content: str,
        mode: InsertionMode | str = InsertionMode.REPLACE,
        content_format: ContentFormat | str = ContentFormat.MARKDOWN,
    ) -> UploadResult:
        """
        Write page content, chunking it when it exceeds the configured chunk size.

        Raises:
            CodaApiError: If the first write fails
            PartialUploadError: If a later chunk fails
        """

        async def write(chunk: str, chunk_mode: InsertionMode, chunk_format: ContentFormat):
            return await self.write_page_content(doc_id, page_id, chunk, chunk_mode, chunk_format)

        return await upload_content(
            write,
            content,
            mode=mode,
            content_format=content_format,
            max_size=self.config.chunk_size,
            pacing_delay=self.config.pacing_delay,
            chunk_append=self.config.chunk_append,
        )

    async def create_page_with_content(
        self,
        doc_id: str,
        name: str,
        content: str | None = None,
        subtitle: str | None = None,
        content_format: ContentFormat | str = ContentFormat.MARKDOWN,
        **page_options: Any,
    ) -> PageCreation:
        """
        Create a page, then upload its content.

        Waits the configured settle delay before the first content write so
        the new page is visible to the content endpoint. A content failure is
        attached to the result rather than raised.

        Raises:
            CodaApiError: If the page itself cannot be created
            ValueError: If content_format is unknown (checked before creating the page)
        """
        content_format = ContentFormat.parse(content_format)
        page = await self.create_page(doc_id, name, subtitle=subtitle, **page_options)
        if not content:
            return PageCreation(page=page)

        if self.config.settle_delay > 0:
            await asyncio.sleep(self.config.settle_delay)

        try:
            upload = await self.update_page_content(
                doc_id, page.id, content, InsertionMode.REPLACE, content_format
            )
        except (CodaApiError, PartialUploadError) as e:
            log(f"Content upload failed for new page {page.id}: {e}")
            return PageCreation(page=page, content_error=e)

        return PageCreation(page=page, upload=upload)

    async def update_page_metadata(
        self,
        doc_id: str,
        page_id: str,
        name: str | None = None,
        subtitle: str | None = None,
        icon_name: str | None = None,
        image_url: str | None = None,
    ) -> dict:
        fields = {
            "name": name,
            "subtitle": subtitle,
            "iconName": icon_name,
            "imageUrl": image_url,
        }
        data = {key: value for key, value in fields.items() if value}
        if not data:
            raise ValueError("Provide at least one of name, subtitle, icon_name or image_url.")
        return await self.request("PUT", f"/docs/{doc_id}/pages/{page_id}", json=data)


# Global client (initialized lazily)
_client: CodaClient | None = None


def get_client() -> CodaClient:
    """
    Get the Coda API client, creating it from the environment on first use.

    Raises:
        ConfigError: If CODA_API_KEY is not set
    """
    global _client

    if _client is not None:
        return _client

    log("Initializing Coda API client...")
    _client = CodaClient(CodaConfig.from_env())
    return _client


def reset_client() -> None:
    """Drop the cached client so the next get_client() re-reads the environment."""
    global _client
    _client = None
