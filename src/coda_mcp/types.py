"""
Type definitions for the Coda MCP Server.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


# --- Content Update Directives ---
class InsertionMode(str, Enum):
    """How new page content combines with the content already on the page."""

    REPLACE = "replace"
    APPEND = "append"

    @classmethod
    def parse(cls, value: "str | InsertionMode") -> "InsertionMode":
        """Parse a mode name case-insensitively, raising ValueError if unknown."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(
                f"Invalid insertion mode '{value}'. Use 'replace' or 'append'."
            )


class ContentFormat(str, Enum):
    """Format of page content sent to the Coda API."""

    MARKDOWN = "markdown"
    HTML = "html"

    @classmethod
    def parse(cls, value: "str | ContentFormat") -> "ContentFormat":
        """Parse a format name case-insensitively, raising ValueError if unknown."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(
                f"Invalid content format '{value}'. Use 'markdown' or 'html'."
            )


# --- Upload Plan Types ---
@dataclass(frozen=True)
class PlannedWrite:
    """One page content write in an upload plan."""

    index: int
    chunk: str
    mode: InsertionMode


@dataclass
class UploadResult:
    """Outcome of a completed page content upload."""

    chunks_written: int
    total_chunks: int
    content_length: int

    @property
    def chunked(self) -> bool:
        return self.total_chunks > 1


# --- API Records ---
@dataclass
class Doc:
    """A Coda document."""

    id: str
    name: str
    browser_link: str | None = None
    owner: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    raw: dict = field(default_factory=dict, repr=False)

    @classmethod
    def from_api(cls, data: dict) -> "Doc":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            browser_link=data.get("browserLink"),
            owner=data.get("ownerName") or data.get("owner"),
            created_at=data.get("createdAt"),
            updated_at=data.get("updatedAt"),
            raw=data,
        )


@dataclass
class Table:
    """A table or view inside a Coda document."""

    id: str
    name: str
    table_type: str | None = None
    row_count: int | None = None
    browser_link: str | None = None
    raw: dict = field(default_factory=dict, repr=False)

    @classmethod
    def from_api(cls, data: dict) -> "Table":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            table_type=data.get("tableType"),
            row_count=data.get("rowCount"),
            browser_link=data.get("browserLink"),
            raw=data,
        )


@dataclass
class Column:
    """A column of a Coda table."""

    id: str
    name: str
    format_type: str | None = None
    display: bool = False
    calculated: bool = False
    raw: dict = field(default_factory=dict, repr=False)

    @classmethod
    def from_api(cls, data: dict) -> "Column":
        column_format = data.get("format") or {}
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            format_type=column_format.get("type") if isinstance(column_format, dict) else column_format,
            display=bool(data.get("display", False)),
            calculated=bool(data.get("calculated", False)),
            raw=data,
        )


@dataclass
class Row:
    """A row of a Coda table. Values are keyed by column name or column ID."""

    id: str
    name: str | None = None
    index: int | None = None
    values: dict[str, Any] = field(default_factory=dict)
    browser_link: str | None = None
    raw: dict = field(default_factory=dict, repr=False)

    @classmethod
    def from_api(cls, data: dict) -> "Row":
        return cls(
            id=data["id"],
            name=data.get("name"),
            index=data.get("index"),
            values=data.get("values") or {},
            browser_link=data.get("browserLink"),
            raw=data,
        )


@dataclass
class Page:
    """A page (canvas) of a Coda document."""

    id: str
    name: str
    subtitle: str | None = None
    page_type: str | None = None
    parent_page_id: str | None = None
    browser_link: str | None = None
    raw: dict = field(default_factory=dict, repr=False)

    @classmethod
    def from_api(cls, data: dict) -> "Page":
        parent = data.get("parent") or {}
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            subtitle=data.get("subtitle"),
            page_type=data.get("type") or data.get("contentType"),
            parent_page_id=parent.get("id") or data.get("parentPageId"),
            browser_link=data.get("browserLink"),
            raw=data,
        )


@dataclass
class PageCreation:
    """
    Result of creating a page and populating its content.

    The page exists whenever this is returned; a failed content upload is
    reported through content_error instead of failing the creation.
    """

    page: Page
    upload: UploadResult | None = None
    content_error: Exception | None = None

    @property
    def content_uploaded(self) -> bool:
        return self.upload is not None and self.content_error is None


# --- Custom Exceptions ---
class CodaApiError(Exception):
    """Raised when a Coda API call fails or returns an unusable response."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class PartialUploadError(Exception):
    """
    Raised when a chunked upload fails after at least one chunk was written.

    The page holds the first chunks_succeeded chunks. The caller can resume by
    appending the remaining chunks, starting at index chunks_succeeded.
    """

    def __init__(self, chunks_succeeded: int, total_chunks: int, cause: Exception):
        super().__init__(
            f"Upload failed on chunk {chunks_succeeded + 1} of {total_chunks} "
            f"({chunks_succeeded} chunk(s) written): {cause}"
        )
        self.chunks_succeeded = chunks_succeeded
        self.total_chunks = total_chunks
        self.cause = cause
