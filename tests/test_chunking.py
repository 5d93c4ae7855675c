"""
Tests for content splitting and chunked page content uploads.
"""

import asyncio
import random

import pytest
from unittest.mock import AsyncMock, patch

from coda_mcp.chunking import (
    build_upload_plan,
    split_content,
    split_long_line,
    upload_content,
)
from coda_mcp.types import (
    CodaApiError,
    ContentFormat,
    InsertionMode,
    PartialUploadError,
)
from conftest import RecordingWriter


def _markdown_document() -> str:
    """14,000 characters of markdown: 139 lines of 99 chars and one of 100."""
    lines = [f"## Section {i:03d} ".ljust(99, "=") for i in range(139)]
    lines.append("Closing paragraph. ".ljust(100, "."))
    return "\n".join(lines)


def _random_text(seed: int, lines: int = 200) -> str:
    rng = random.Random(seed)
    words = ["alpha", "beta", "gamma", "delta", "epsilon", "x" * 40, "", "  "]
    out = []
    for _ in range(lines):
        out.append(" ".join(rng.choice(words) for _ in range(rng.randint(0, 30))))
    return "\n".join(out)


class TestSplitLongLine:
    """Tests for splitting a single oversized line."""

    def test_cut_at_space_in_last_thirty_percent(self):
        """Should cut at a space that falls within the last 30% of the window."""
        line = "a" * 85 + " " + "b" * 114

        parts = split_long_line(line, 100)

        assert parts[0] == "a" * 85
        assert parts == ["a" * 85, "b" * 100, "b" * 14]

    def test_ignore_space_before_threshold(self):
        """Should cut hard at max_size when the last space is too early."""
        line = "a" * 50 + " " + "b" * 149

        parts = split_long_line(line, 100)

        assert parts[0] == line[:100]
        assert parts == [line[:100], "b" * 100]

    def test_space_exactly_at_threshold(self):
        """Should cut at a space sitting exactly at 70% of the window."""
        line = "a" * 70 + " " + "b" * 129

        parts = split_long_line(line, 100)

        assert parts[0] == "a" * 70
        assert parts[1] == "b" * 100

    def test_space_exactly_at_max_size(self):
        """Should use a space sitting right at the window edge."""
        line = "a" * 100 + " " + "b" * 50

        assert split_long_line(line, 100) == ["a" * 100, "b" * 50]

    def test_hard_cut_single_word(self):
        """Should hard cut a word longer than max_size."""
        assert split_long_line("x" * 250, 100) == ["x" * 100, "x" * 100, "x" * 50]

    def test_remainder_is_trimmed(self):
        """Should trim the remainder before continuing."""
        line = "a" * 9 + "     " + "b" * 6

        # Last space in the window is at index 10, so the first part keeps one space
        assert split_long_line(line, 10) == ["a" * 9 + " ", "b" * 6]

    def test_whitespace_only_parts_are_skipped(self):
        """Should never return a whitespace-only part."""
        assert split_long_line(" " * 25, 10) == []

    def test_invalid_max_size(self):
        """Should reject a non-positive max_size."""
        with pytest.raises(ValueError):
            split_long_line("abc", 0)


class TestSplitContent:
    """Tests for splitting content into chunks."""

    def test_fast_path_returns_content_unchanged(self):
        """Should return content that fits as a single untouched chunk."""
        content = "  hello\n world  "

        assert split_content(content, 100) == [content]

    def test_content_exactly_at_limit(self):
        """Should not split content whose length equals max_size."""
        assert split_content("a" * 10, 10) == ["a" * 10]

    def test_empty_content(self):
        """Should return empty content as-is on the fast path."""
        assert split_content("", 10) == [""]

    def test_packs_lines_until_limit(self):
        """Should pack whole lines into a chunk while they fit."""
        assert split_content("aaaa\nbbbb\ncccc", 10) == ["aaaa\nbbbb", "cccc"]

    def test_trims_chunk_boundaries(self):
        """Should trim whitespace at the edges of each chunk."""
        assert split_content(" one\ntwo \nthree", 9) == ["one\ntwo", "three"]

    def test_skips_whitespace_only_chunks(self):
        """Should never produce an empty or whitespace-only chunk."""
        chunks = split_content("aaaaaaaa\n   \n\nbbbbbbbb", 9)

        assert chunks == ["aaaaaaaa", "bbbbbbbb"]

    def test_long_line_is_split_and_last_part_continues(self):
        """Should split a long line and let its last part absorb following lines."""
        content = "short\nabcdefghij klmnopqrstuvwxyz\nend"

        chunks = split_content(content, 10)

        assert chunks == ["short", "abcdefghij", "klmnopqrst", "uvwxyz\nend"]

    def test_uses_default_chunk_size(self):
        """Should split on the 4000 character default."""
        content = "\n".join(["y" * 999] * 5)

        chunks = split_content(content)

        assert len(chunks) == 2
        assert all(len(chunk) <= 4000 for chunk in chunks)

    @pytest.mark.parametrize("max_size", [0, -5, 2.5, True, None])
    def test_invalid_max_size(self, max_size):
        """Should reject anything but a positive integer max_size."""
        with pytest.raises(ValueError):
            split_content("abc", max_size)

    def test_non_text_content(self):
        """Should reject content that isn't a string."""
        with pytest.raises(TypeError):
            split_content(b"bytes are not text", 10)

    def test_markdown_document_scenario(self):
        """Should split 14,000 characters into exactly 4 chunks at M=4000."""
        content = _markdown_document()
        assert len(content) == 14000

        chunks = split_content(content, 4000)

        assert len(chunks) == 4
        assert all(len(chunk) <= 4000 for chunk in chunks)
        assert "\n".join(chunks) == content
        assert len("\n".join(chunks)) == 14000

    @pytest.mark.parametrize("seed", range(5))
    @pytest.mark.parametrize("max_size", [15, 60, 250, 1000])
    def test_round_trip_and_size_bound(self, seed, max_size):
        """Should keep every non-whitespace character, in order, within the bound."""
        content = _random_text(seed)

        chunks = split_content(content, max_size)

        assert all(chunk.strip() for chunk in chunks)
        assert all(len(chunk) <= max_size for chunk in chunks)
        assert "".join("\n".join(chunks).split()) == "".join(content.split())

    def test_round_trip_preserves_lines(self):
        """Should reproduce content exactly when no trimming or long lines are involved."""
        content = "\n".join(f"line number {i}" for i in range(300))

        assert "\n".join(split_content(content, 200)) == content


class TestBuildUploadPlan:
    """Tests for deciding which writes an upload needs."""

    def test_small_content_single_write(self):
        """Should plan one write with the requested mode."""
        plan = build_upload_plan("hello", InsertionMode.REPLACE, 100)

        assert len(plan) == 1
        assert plan[0].chunk == "hello"
        assert plan[0].mode is InsertionMode.REPLACE

    def test_replace_is_downgraded_after_first_chunk(self):
        """Should replace with the first chunk and append the rest."""
        plan = build_upload_plan(_markdown_document(), InsertionMode.REPLACE, 4000)

        assert [step.index for step in plan] == [0, 1, 2, 3]
        assert [step.mode for step in plan] == [
            InsertionMode.REPLACE,
            InsertionMode.APPEND,
            InsertionMode.APPEND,
            InsertionMode.APPEND,
        ]

    def test_oversized_append_is_not_split_by_default(self):
        """Should keep an oversized append request as a single write."""
        content = _markdown_document()

        plan = build_upload_plan(content, InsertionMode.APPEND, 4000)

        assert len(plan) == 1
        assert plan[0].chunk == content
        assert plan[0].mode is InsertionMode.APPEND

    def test_oversized_append_split_when_enabled(self):
        """Should split an oversized append request with every chunk appending."""
        plan = build_upload_plan(
            _markdown_document(), InsertionMode.APPEND, 4000, chunk_append=True
        )

        assert len(plan) == 4
        assert all(step.mode is InsertionMode.APPEND for step in plan)

    def test_accepts_mode_names(self):
        """Should accept the mode as a string."""
        plan = build_upload_plan("x" * 30, "replace", 10)

        assert plan[0].mode is InsertionMode.REPLACE
        assert plan[1].mode is InsertionMode.APPEND


class TestUploadContent:
    """Tests for the chunked upload orchestrator."""

    @pytest.mark.asyncio
    async def test_small_content_single_write(self, recording_writer):
        """Should issue exactly one write for content that fits."""
        result = await upload_content(recording_writer, "hello", pacing_delay=0)

        assert recording_writer.calls == [
            ("hello", InsertionMode.REPLACE, ContentFormat.MARKDOWN)
        ]
        assert result.chunks_written == 1
        assert result.total_chunks == 1
        assert result.chunked is False

    @pytest.mark.asyncio
    async def test_markdown_document_scenario(self, recording_writer):
        """Should write 4 chunks: replace first, then three appends, in order."""
        content = _markdown_document()

        result = await upload_content(
            recording_writer, content, InsertionMode.REPLACE, max_size=4000, pacing_delay=0
        )

        assert recording_writer.modes == [
            InsertionMode.REPLACE,
            InsertionMode.APPEND,
            InsertionMode.APPEND,
            InsertionMode.APPEND,
        ]
        assert recording_writer.chunks == split_content(content, 4000)
        assert "\n".join(recording_writer.chunks) == content
        assert result.chunks_written == 4
        assert result.content_length == 14000
        assert result.chunked is True

    @pytest.mark.asyncio
    async def test_passes_content_format(self, recording_writer):
        """Should pass the content format to every write."""
        await upload_content(
            recording_writer, "a\nb\nc", content_format="html", max_size=2, pacing_delay=0
        )

        assert len(recording_writer.calls) == 3
        assert {call[2] for call in recording_writer.calls} == {ContentFormat.HTML}

    @pytest.mark.asyncio
    async def test_oversized_append_single_write(self, recording_writer):
        """Should not split an append request unless chunk_append is set."""
        content = "x" * 50

        await upload_content(recording_writer, content, "append", max_size=10, pacing_delay=0)

        assert recording_writer.calls == [(content, InsertionMode.APPEND, ContentFormat.MARKDOWN)]

    @pytest.mark.asyncio
    async def test_oversized_append_chunked_when_enabled(self, recording_writer):
        """Should append every chunk when chunk_append is set."""
        await upload_content(
            recording_writer, "x" * 50, "append", max_size=10, pacing_delay=0, chunk_append=True
        )

        assert len(recording_writer.calls) == 5
        assert set(recording_writer.modes) == {InsertionMode.APPEND}

    @pytest.mark.asyncio
    async def test_writes_never_overlap(self):
        """Should wait for each write to finish before starting the next."""
        events = []

        async def slow_write(chunk, mode, content_format):
            events.append(("start", chunk))
            await asyncio.sleep(0)
            events.append(("end", chunk))

        await upload_content(slow_write, "aa\nbb\ncc\ndd", max_size=3, pacing_delay=0)

        assert events == [
            ("start", "aa"), ("end", "aa"),
            ("start", "bb"), ("end", "bb"),
            ("start", "cc"), ("end", "cc"),
            ("start", "dd"), ("end", "dd"),
        ]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("fail_on", [2, 3, 4])
    async def test_partial_failure_reports_committed_chunks(self, fail_on):
        """Should stop at the failing chunk and report how many were written."""
        cause = CodaApiError("API Error 500: boom", status_code=500)
        writer = RecordingWriter(fail_on=fail_on, error=cause)

        with pytest.raises(PartialUploadError) as exc_info:
            await upload_content(writer, _markdown_document(), max_size=4000, pacing_delay=0)

        error = exc_info.value
        assert error.chunks_succeeded == fail_on - 1
        assert error.total_chunks == 4
        assert error.cause is cause
        assert error.__cause__ is cause
        assert len(writer.calls) == fail_on
        assert f"chunk {fail_on} of 4" in str(error)

    @pytest.mark.asyncio
    async def test_first_chunk_failure_propagates_unchanged(self):
        """Should re-raise the write error unchanged when the first write fails."""
        cause = CodaApiError("API Error 401: Unauthorized", status_code=401)
        writer = RecordingWriter(fail_on=1, error=cause)

        with pytest.raises(CodaApiError) as exc_info:
            await upload_content(writer, _markdown_document(), max_size=4000, pacing_delay=0)

        assert exc_info.value is cause
        assert len(writer.calls) == 1

    @pytest.mark.asyncio
    async def test_single_write_failure_propagates_unchanged(self):
        """Should re-raise the write error for a failed unchunked write."""
        writer = RecordingWriter(fail_on=1, error=CodaApiError("API Error 404: gone", 404))

        with pytest.raises(CodaApiError):
            await upload_content(writer, "short", pacing_delay=0)

    @pytest.mark.asyncio
    async def test_invalid_input_fails_before_any_write(self, recording_writer):
        """Should validate input before touching the page."""
        with pytest.raises(ValueError):
            await upload_content(recording_writer, "abc", max_size=0)
        with pytest.raises(TypeError):
            await upload_content(recording_writer, 12345, max_size=10)
        with pytest.raises(ValueError):
            await upload_content(recording_writer, "abc", mode="overwrite")
        with pytest.raises(ValueError):
            await upload_content(recording_writer, "abc", content_format="pdf")

        assert recording_writer.calls == []

    @pytest.mark.asyncio
    async def test_pacing_delay_between_writes(self, recording_writer):
        """Should pause between successive writes but not after the last."""
        with patch("coda_mcp.chunking.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            await upload_content(
                recording_writer, _markdown_document(), max_size=4000, pacing_delay=0.15
            )

        assert mock_sleep.await_count == 3
        mock_sleep.assert_awaited_with(0.15)

    @pytest.mark.asyncio
    async def test_no_pacing_for_single_write(self, recording_writer):
        """Should not pause when only one write is needed."""
        with patch("coda_mcp.chunking.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            await upload_content(recording_writer, "small", pacing_delay=0.1)

        mock_sleep.assert_not_awaited()
