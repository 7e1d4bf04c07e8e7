# tests/unit/chunking/test_unit_invoker.py — v1
"""Tests for chunking/invoker.py."""

from __future__ import annotations

import pytest

from jobpilot.chunking.invoker import ChunkedInvoker
from jobpilot.chunking.paragraph_chunker import ParagraphChunker
from jobpilot.core.errors import NetworkError, TotalFailure
from jobpilot.llm.models import Prompt
from jobpilot.tasks.models import ExtractedSkills
from tests.fakes import FakeAdapter

PARAGRAPHS = [
    "Built services in Python and Go " + "with care " * 6,
    "FAIL this paragraph mentions Rust " + "and more " * 6,
    "Deployed with Docker and Kubernetes " + "daily " * 6,
]
TEXT = "\n\n".join(p.strip() for p in PARAGRAPHS)


def skills_for(prompt: Prompt):
    if "FAIL" in prompt.user:
        raise NetworkError("timeout", provider="fake")
    words = [w for w in ("Python", "Go", "Rust", "Docker", "Kubernetes") if w in prompt.user]
    return {"skills": words}


def build_prompt(chunk):
    return Prompt(system="extract", user=chunk.content)


@pytest.fixture
def invoker():
    return ChunkedInvoker(ParagraphChunker(max_chars=80, min_chars=10))


class TestChunkedInvoker:
    @pytest.mark.asyncio
    async def test_failure_isolated(self, invoker):
        adapter = FakeAdapter(responses=[skills_for])
        result = await invoker.run(TEXT, adapter, build_prompt, ExtractedSkills, "extraction")
        assert len(adapter.calls) == 3
        assert result.failed_chunks == [2]
        assert result.payload["skills"] == ["Python", "Go", "Docker", "Kubernetes"]

    @pytest.mark.asyncio
    async def test_invoke_all_in_order(self, invoker):
        adapter = FakeAdapter(responses=[skills_for])
        chunks = invoker.split(TEXT)
        results = await invoker.invoke_all(chunks, adapter, build_prompt, ExtractedSkills)
        assert [r.chunk_index for r in results] == [0, 1, 2]
        assert [r.ok for r in results] == [True, False, True]
        assert [p.user for p in adapter.calls] == [c.content for c in chunks]

    @pytest.mark.asyncio
    async def test_all_chunks_fail(self, invoker):
        adapter = FakeAdapter(responses=[NetworkError("down", provider="fake")])
        with pytest.raises(TotalFailure) as exc_info:
            await invoker.run(TEXT, adapter, build_prompt, ExtractedSkills, "extraction")
        assert exc_info.value.first_failed_chunk == 1
        assert isinstance(exc_info.value.root_cause, NetworkError)

    def test_needs_chunking(self, invoker):
        assert invoker.needs_chunking(TEXT)
        assert not invoker.needs_chunking("short")
