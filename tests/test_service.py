from __future__ import annotations

from datetime import timedelta

import pytest

from conftest import NOW, sample_notion
from dross.errors import TransportError
from dross.ingest.render import MarkdownRenderer
from dross.ingest.service import IngestService, PageSection
from dross.ingest.walker import RemoteTreeWalker

CUTOFF = NOW - timedelta(days=1)


def _service(notion, **kwargs) -> IngestService:
    return IngestService(notion, RemoteTreeWalker(notion), MarkdownRenderer(), **kwargs)


async def test_ingest_renders_pages_with_recent_edits():
    notion = sample_notion()

    result = await _service(notion, budget=None).ingest(CUTOFF)

    assert notion.searched_with == CUTOFF
    assert result.document == (
        "Page Title: Weekly Notes\nTask\n\tSub 1\n\tSub 2\n"
        "\n"
        "Page Title: Reading List\nBook\n"
    )
    assert result.processed_pages == 3
    assert result.rendered_pages == 2
    assert result.root_count == 2
    assert result.truncated_pages == 0


async def test_ingest_reports_sections_progressively():
    seen: list[str] = []

    def on_section(section: PageSection) -> None:
        seen.append(section.document.title)

    result = await _service(sample_notion(), budget=None).ingest(CUTOFF, on_section=on_section)

    assert seen == ["Weekly Notes", "Reading List"]
    assert [section.document.title for section in result.sections] == seen


async def test_ingest_skips_configured_urls():
    result = await _service(sample_notion(), budget=None, skip_url_patterns=["Reading-List"]).ingest(CUTOFF)

    assert result.processed_pages == 2
    assert result.rendered_pages == 1
    assert "Reading List" not in result.document


async def test_ingest_counts_truncated_pages():
    result = await _service(sample_notion(), budget=0).ingest(CUTOFF)

    assert result.document == ""
    assert result.rendered_pages == 0
    assert result.truncated_pages == 3


async def test_ingest_propagates_transport_errors():
    notion = sample_notion()
    notion.failures["a"] = TransportError("boom")
    seen: list[str] = []

    with pytest.raises(TransportError):
        await _service(notion, budget=None).ingest(CUTOFF, on_section=lambda section: seen.append(section.text))

    assert seen == []
