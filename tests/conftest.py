"""Shared pytest fixtures for pdfgenai tests.

Provides a scripted in-memory transport, fast retry/rate-limit configs,
and an in-memory OpenTelemetry exporter so tests never touch the network
and finish in well under a second each.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from pdfgenai.client import ResilientClient
from pdfgenai.config import ClientConfig, RateLimitConfig
from pdfgenai.telemetry import Telemetry

from fakes import FakeTransport, fast_retry


@pytest.fixture
def fast_config() -> ClientConfig:
    """ClientConfig with millisecond backoff and a generous rate limit."""
    return ClientConfig(
        provider="openai",
        api_key="test-key",
        rate_limit=RateLimitConfig(rate=1000.0, burst=100),
        upload_retry=fast_retry(),
        completion_retry=fast_retry(),
    )


@pytest.fixture
def telemetry():
    """``(Telemetry, InMemorySpanExporter)`` pair."""
    return Telemetry.for_testing()


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def make_client(fast_config, telemetry):
    """Factory building a ResilientClient around a given transport."""
    tel, _ = telemetry

    def _make(transport: FakeTransport, **kwargs) -> ResilientClient:
        kwargs.setdefault("telemetry", tel)
        return ResilientClient(transport, fast_config, **kwargs)

    return _make


@pytest.fixture
def blank_pdf(tmp_path: Path) -> Path:
    """A valid one-page PDF with no text layer."""
    from pypdf import PdfWriter

    writer = PdfWriter()
    writer.add_blank_page(width=612, height=792)
    path = tmp_path / "blank.pdf"
    with open(path, "wb") as f:
        writer.write(f)
    return path
