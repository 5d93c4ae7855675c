"""
Chunked page content uploads.

The Coda API times out on large page content writes, so content longer than
the chunk size is split at line boundaries (falling back to word boundaries,
then hard cuts) and written as an ordered sequence: the first chunk with the
requested insertion mode, every later chunk with 'append'.

Writes for one page are strictly sequential. 'append' is relative to whatever
the page currently holds, so reordering or overlapping writes corrupts it.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from coda_mcp.config import DEFAULT_CHUNK_SIZE, DEFAULT_PACING_DELAY
from coda_mcp.types import (
    ContentFormat,
    InsertionMode,
    PartialUploadError,
    PlannedWrite,
    UploadResult,
)
from coda_mcp.utils import log

LINE_SEPARATOR = "\n"

# A long line is cut at the last space only if it falls in the final 30% of the window
WORD_BOUNDARY_RATIO = 0.7

# write(chunk, mode, content_format) -> awaitable API result
PageWriter = Callable[[str, InsertionMode, ContentFormat], Awaitable[Any]]


def _check_inputs(content: str, max_size: int) -> None:
    if not isinstance(content, str):
        raise TypeError(f"content must be text, got {type(content).__name__}")
    if isinstance(max_size, bool) or not isinstance(max_size, int) or max_size <= 0:
        raise ValueError(f"max_size must be a positive integer, got {max_size!r}")


def split_long_line(line: str, max_size: int) -> list[str]:
    """
    Split a single line that is longer than max_size.

    Each cut happens at max_size characters, unless the last space within the
    window sits at or beyond 70% of it, in which case the cut happens at that
    space and the space is dropped. The remainder is trimmed before the next
    cut. Whitespace-only parts are skipped.

    Args:
        line: Line of text without line separators
        max_size: Maximum characters per part

    Returns:
        Ordered list of parts
    """
    _check_inputs(line, max_size)

    parts: list[str] = []
    remaining = line

    while len(remaining) > max_size:
        split_point = max_size
        space_index = remaining.rfind(" ", 0, max_size + 1)
        if space_index >= max_size * WORD_BOUNDARY_RATIO:
            split_point = space_index

        part = remaining[:split_point]
        if part.strip():
            parts.append(part)
        remaining = remaining[split_point:].strip()

    if remaining:
        parts.append(remaining)

    return parts


def split_content(content: str, max_size: int = DEFAULT_CHUNK_SIZE) -> list[str]:
    """
    Split content into chunks of at most max_size characters.

    Content that already fits is returned unchanged as a single chunk.
    Otherwise lines are packed into chunks; each chunk is trimmed and empty
    chunks are dropped. Lines longer than max_size are broken up with
    split_long_line. Joining the chunks with newlines reproduces the content,
    except for whitespace trimmed at chunk boundaries.

    Args:
        content: Text to split
        max_size: Maximum characters per chunk

    Returns:
        Ordered list of chunks

    Raises:
        TypeError: If content is not a string
        ValueError: If max_size is not a positive integer
    """
    _check_inputs(content, max_size)

    if len(content) <= max_size:
        return [content]

    chunks: list[str] = []
    current = ""

    for line in content.split(LINE_SEPARATOR):
        if len(current) + len(line) + 1 > max_size:
            if current.strip():
                chunks.append(current.strip())

            if len(line) > max_size:
                parts = split_long_line(line, max_size)
                chunks.extend(part.strip() for part in parts[:-1])
                current = parts[-1] if parts else ""
            else:
                current = line
        else:
            current = f"{current}{LINE_SEPARATOR}{line}" if current else line

    if current.strip():
        chunks.append(current.strip())

    return chunks


def build_upload_plan(
    content: str,
    mode: InsertionMode = InsertionMode.REPLACE,
    max_size: int = DEFAULT_CHUNK_SIZE,
    chunk_append: bool = False,
) -> list[PlannedWrite]:
    """
    Decide which writes an upload needs, in order.

    Content that fits is written in one call. An oversized append request is
    also written in one call unless chunk_append is set. Everything else is
    split; the first chunk keeps the requested mode and later chunks append.
    """
    _check_inputs(content, max_size)
    mode = InsertionMode.parse(mode)

    if len(content) <= max_size or (mode is InsertionMode.APPEND and not chunk_append):
        return [PlannedWrite(index=0, chunk=content, mode=mode)]

    return [
        PlannedWrite(index=i, chunk=chunk, mode=mode if i == 0 else InsertionMode.APPEND)
        for i, chunk in enumerate(split_content(content, max_size))
    ]


async def upload_content(
    write: PageWriter,
    content: str,
    mode: InsertionMode | str = InsertionMode.REPLACE,
    content_format: ContentFormat | str = ContentFormat.MARKDOWN,
    max_size: int = DEFAULT_CHUNK_SIZE,
    pacing_delay: float = DEFAULT_PACING_DELAY,
    chunk_append: bool = False,
) -> UploadResult:
    """
    Write content to a page, chunking it when it exceeds max_size.

    Writes are issued one at a time in plan order, pausing pacing_delay
    seconds between them. Nothing is retried or rolled back.

    Args:
        write: Page content write primitive, called as write(chunk, mode, content_format)
        content: Text to upload
        mode: Requested insertion mode
        content_format: Format of the content
        max_size: Maximum characters per write
        pacing_delay: Seconds to wait between successive writes
        chunk_append: Whether oversized append requests are chunked too

    Returns:
        UploadResult describing the writes performed

    Raises:
        TypeError, ValueError: For invalid input, before any write
        PartialUploadError: If a write after the first fails
        Exception: Whatever the first write raised, unchanged
    """
    mode = InsertionMode.parse(mode)
    content_format = ContentFormat.parse(content_format)
    plan = build_upload_plan(content, mode, max_size, chunk_append)
    total = len(plan)

    if total > 1:
        log(
            f"Uploading {len(content)} characters in {total} chunks "
            f"(max {max_size} per write, mode: {mode.value})"
        )

    for step in plan:
        if step.index > 0 and pacing_delay > 0:
            await asyncio.sleep(pacing_delay)

        try:
            await write(step.chunk, step.mode, content_format)
        except Exception as e:
            if step.index == 0:
                raise
            log(f"Chunk {step.index + 1}/{total} failed after {step.index} successful write(s): {e}")
            raise PartialUploadError(step.index, total, e) from e

        if total > 1:
            log(f"Wrote chunk {step.index + 1}/{total} ({len(step.chunk)} chars, {step.mode.value})")

    return UploadResult(chunks_written=total, total_chunks=total, content_length=len(content))
