# src/chunking/invoker.py — v1
"""Run a task over document chunks with per-chunk failure isolation."""

from __future__ import annotations

import logging
from typing import Callable

from pydantic import BaseModel

from jobpilot.chunking.merger import MergeStrategy, merge_results
from jobpilot.chunking.models import Chunk, ChunkResult, MergeResult
from jobpilot.chunking.paragraph_chunker import ParagraphChunker
from jobpilot.core.errors import JobPilotError
from jobpilot.llm.base_client import BaseInferenceAdapter
from jobpilot.llm.models import Prompt

logger = logging.getLogger(__name__)

PromptBuilder = Callable[[Chunk], Prompt]


class ChunkedInvoker:
    """Split, invoke sequentially, merge."""

    def __init__(self, chunker: ParagraphChunker | None = None) -> None:
        self._chunker = chunker or ParagraphChunker()

    @property
    def chunker(self) -> ParagraphChunker:
        return self._chunker

    def needs_chunking(self, text: str) -> bool:
        return self._chunker.needs_chunking(text)

    def split(self, text: str) -> list[Chunk]:
        return self._chunker.split(text)

    async def invoke_all(
        self,
        chunks: list[Chunk],
        adapter: BaseInferenceAdapter,
        prompt_builder: PromptBuilder,
        output_shape: type[BaseModel],
    ) -> list[ChunkResult]:
        """Invoke ``adapter`` on each chunk in order.

        A failing chunk is recorded and the remaining chunks still run.
        """
        results: list[ChunkResult] = []
        for chunk in chunks:
            try:
                inference = await adapter.invoke(prompt_builder(chunk), output_shape)
            except JobPilotError as e:
                logger.warning(
                    "Chunk %d/%d failed on %s: %s",
                    chunk.index + 1, len(chunks), adapter.provider_name, e,
                )
                results.append(ChunkResult(chunk_index=chunk.index, error=e))
                continue
            results.append(ChunkResult(chunk_index=chunk.index, payload=inference.payload))
        return results

    def merge(self, results: list[ChunkResult], strategy: MergeStrategy) -> MergeResult:
        return merge_results(results, strategy)

    async def run(
        self,
        text: str,
        adapter: BaseInferenceAdapter,
        prompt_builder: PromptBuilder,
        output_shape: type[BaseModel],
        strategy: MergeStrategy,
    ) -> MergeResult:
        """split() → invoke_all() → merge().

        Raises:
            TotalFailure: Every chunk failed.
        """
        chunks = self.split(text)
        logger.info(
            "Chunked invocation: %d chunk(s) of <= %d chars",
            len(chunks), self._chunker.max_chars,
        )
        results = await self.invoke_all(chunks, adapter, prompt_builder, output_shape)
        return self.merge(results, strategy)
