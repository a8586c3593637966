"""Tests for PDF text extraction."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from pdfgenai.errors import CancellationError, ExtractionError, LocalIOError
from pdfgenai.extraction import extract_text, extract_text_async
from pdfgenai.resilience.cancellation import CallContext


def test_missing_file(tmp_path: Path):
    with pytest.raises(LocalIOError) as exc_info:
        extract_text(tmp_path / "missing.pdf")
    assert exc_info.value.path.endswith("missing.pdf")


def test_not_a_pdf(tmp_path: Path):
    path = tmp_path / "fake.pdf"
    path.write_bytes(b"this is not a pdf at all")

    with pytest.raises(ExtractionError):
        extract_text(path)


def test_blank_page_has_no_text(blank_pdf: Path):
    assert extract_text(blank_pdf).strip() == ""


async def test_async_extraction(blank_pdf: Path):
    text = await extract_text_async(blank_pdf)
    assert text.strip() == ""


async def test_async_extraction_respects_cancel(blank_pdf: Path):
    cancel = asyncio.Event()
    cancel.set()

    with pytest.raises(CancellationError):
        await extract_text_async(blank_pdf, CallContext.create(cancel))
