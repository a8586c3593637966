"""PDF text extraction.

The client core never looks inside documents; it only receives the text
produced here.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from pypdf import PdfReader
from pypdf.errors import PdfReadError

from pdfgenai.errors import ExtractionError, LocalIOError
from pdfgenai.resilience.cancellation import BACKGROUND, CallContext

logger = logging.getLogger(__name__)


def extract_text(path: str | Path) -> str:
    """Extract the plain text of every page of a PDF.

    Pages are joined with newlines; pages without a text layer contribute
    an empty string.

    Args:
        path: Path to the PDF file.

    Returns:
        The document text.

    Raises:
        LocalIOError: The file does not exist or cannot be read.
        ExtractionError: The file is not a readable PDF.
    """
    pdf_path = Path(path)
    try:
        data = pdf_path.open("rb")
    except OSError as exc:
        raise LocalIOError(
            f"failed to open pdf: {exc.strerror or exc}", path=str(pdf_path)
        ) from exc

    with data:
        try:
            reader = PdfReader(data)
            pages = [page.extract_text() or "" for page in reader.pages]
        except (PdfReadError, ValueError) as exc:
            raise ExtractionError(f"failed to get plain text from {pdf_path.name}: {exc}") from exc

    logger.debug("Extracted %d pages from %s", len(pages), pdf_path.name)
    return "\n".join(pages)


async def extract_text_async(path: str | Path, ctx: CallContext = BACKGROUND) -> str:
    """Run :func:`extract_text` in a worker thread.

    *ctx* is checked before and after extraction; pypdf itself cannot be
    interrupted mid-document.
    """
    ctx.check()
    text = await asyncio.to_thread(extract_text, path)
    ctx.check()
    return text
