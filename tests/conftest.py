"""Shared pytest fixtures for folio tests."""

from __future__ import annotations

from pathlib import Path

import pytest
from omegaconf import OmegaConf

from folio.core.clock import SimClock
from folio.history.document import Document, MarkdownFragment, PdfFragment
from folio.history.storage import MemoryStorage


@pytest.fixture
def project_root() -> Path:
    return Path(__file__).parent.parent


@pytest.fixture
def config_path(project_root: Path) -> Path:
    return project_root / "config" / "default.yaml"


@pytest.fixture
def default_config(config_path: Path):
    return OmegaConf.load(config_path)


@pytest.fixture
def sim_clock() -> SimClock:
    return SimClock(start_epoch=1000.0)


@pytest.fixture
def memory_storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def sample_document() -> Document:
    """A two-fragment document: a welcome note and an attached exhibit."""
    return Document(
        doc_title="Motion to Compel",
        doc_date="2025-03-14",
        left_heading_fields=("Jane Doe", "Plaintiff in Pro Per"),
        right_heading_fields=("Case No. 12345",),
        plaintiff_name="Jane Doe",
        defendant_name="John Roe",
        court_title="SUPERIOR COURT",
        fragments=(
            MarkdownFragment(id="frag-1", title="Welcome", content="# Hello"),
            PdfFragment(id="frag-2", name="exhibit-a.pdf", data=b"%PDF-1.4"),
        ),
    )
