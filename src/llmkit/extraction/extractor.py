"""Chunked extraction of structured data from large documents.

The :class:`ChunkedExtractor` walks one document through the states

``NOT_STARTED -> CHUNKING -> PROCESSING_CHUNKS -> REDUCING -> DONE``

entering ``PROCESSING_CHUNKS`` through ``RESUMING`` instead when a
matching checkpoint exists.  Chunks are processed one at a time.  Each
chunk gets one attempt plus ``max_retries`` retries, waiting
``retry_base_delay * n`` seconds before the n-th retry; generation and
parse failures are retried alike.  A chunk that exhausts its attempts is
recorded as failed and a plain-text summary of it is requested as a
fallback.  Progress is checkpointed after every chunk, and the checkpoint
is removed once every chunk has succeeded.

The per-chunk results are combined by :func:`reduce_results`, a pure
function that can be re-run on any list of results.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Union

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_incrementing,
)

from ..config.settings import settings
from ..core.errors import CheckpointIOError, GenerationError, ParseError
from ..io.checkpoints import CheckpointStore
from ..llm.client import GenerationClient
from ..utils.logging import get_logger
from .chunking import DocumentChunk, chunk_text
from .models import (
    Checkpoint,
    ChunkExtraction,
    ChunkResult,
    Concepts,
    ExtractionProgress,
    ExtractionReport,
    ExtractionResult,
    Quote,
)
from .strategies import StructuredOutputStrategy, build_strategy

logger = get_logger(__name__)

RETRYABLE_ERRORS = (GenerationError, ParseError)
NO_TAKEAWAY = "Unable to extract key takeaway from document."
KEY_TAKEAWAY_CHARS = 250

ProgressCallback = Callable[[ExtractionProgress], None]
SleepFunc = Callable[[float], Awaitable[None]]


class ExtractorState(str, Enum):
    NOT_STARTED = "not_started"
    CHUNKING = "chunking"
    RESUMING = "resuming"
    PROCESSING_CHUNKS = "processing_chunks"
    REDUCING = "reducing"
    DONE = "done"


class AttemptOutcome(str, Enum):
    """Result of one extraction attempt on one chunk."""

    SUCCESS = "success"
    RETRYABLE_FAILURE = "retryable_failure"
    TERMINAL_FAILURE = "terminal_failure"


@dataclass
class ChunkAttempts:
    """Attempt history of one chunk; the last outcome is final."""

    outcomes: List[AttemptOutcome] = field(default_factory=list)
    data: Optional[ChunkExtraction] = None
    error: Optional[BaseException] = None

    @property
    def final(self) -> AttemptOutcome:
        return self.outcomes[-1]


def build_chunk_prompt(chunk: DocumentChunk, total_chunks: int) -> str:
    return (
        f"Extract structured information from this document chunk "
        f"({chunk.index + 1}/{total_chunks}).\n\n"
        f"Document chunk:\n{chunk.text}\n\n"
        "Extract:\n"
        "- Key takeaway (50 words)\n"
        "- All company names\n"
        "- Business and technical concepts\n"
        "- Quotes with speakers\n"
        "- Brief summary"
    )


def _unique(values: Iterable[str]) -> List[str]:
    seen: Dict[str, None] = {}
    for value in values:
        seen.setdefault(value, None)
    return list(seen)


def reduce_results(results: Iterable[ChunkResult]) -> ExtractionResult:
    """Combine the successful chunk results, in chunk order, into one result.

    Companies and concepts are de-duplicated keeping first-seen order,
    quotes are concatenated and summaries are joined with a space.  The
    key takeaway is built from the first three summaries.
    """
    successful = sorted((r for r in results if r.success), key=lambda r: r.chunk_index)

    summaries = [r.data.summary for r in successful if r.data.summary]
    if summaries:
        key_takeaway = " ".join(summaries[:3])[:KEY_TAKEAWAY_CHARS]
    else:
        key_takeaway = NO_TAKEAWAY

    quotes: List[Quote] = []
    for r in successful:
        quotes.extend(r.data.quotes)

    return ExtractionResult(
        key_takeaway=key_takeaway,
        companies=_unique(c for r in successful for c in r.data.companies),
        concepts=Concepts(
            business=_unique(c for r in successful for c in r.data.concepts.business),
            technical=_unique(c for r in successful for c in r.data.concepts.technical),
        ),
        quotes=quotes,
        summary=" ".join(summaries),
    )


class ChunkedExtractor:
    """Resumable map/reduce extraction over document chunks.

    Args:
        client: Generation client used for extraction and fallback summaries.
        chunk_size: Approximate tokens per chunk (default from settings).
        overlap: Approximate tokens repeated between chunks (default from settings).
        max_retries: Retries after the first attempt (default from settings).
        retry_base_delay: Seconds; the n-th retry waits n times this.
        use_streaming: Use :class:`StreamingJSONStrategy` instead of object generation.
        model: Model id for every call; ``None`` uses the client's default.
        checkpoint_store: Where progress is persisted (default ``settings.checkpoint_dir``).
        strategy: Explicit strategy, overriding ``use_streaming``.
        on_delta: Called with the characters received so far while a chunk
            streams; only used by the streaming strategy.
        sleep: Coroutine used to wait between attempts.
    """

    def __init__(
        self,
        client: GenerationClient,
        *,
        chunk_size: Optional[int] = None,
        overlap: Optional[int] = None,
        max_retries: Optional[int] = None,
        retry_base_delay: Optional[float] = None,
        use_streaming: bool = False,
        model: Optional[str] = None,
        checkpoint_store: Optional[CheckpointStore] = None,
        strategy: Optional[StructuredOutputStrategy] = None,
        sleep: SleepFunc = asyncio.sleep,
        on_delta: Optional[Callable[[int], None]] = None,
    ) -> None:
        self.client = client
        self.chunk_size = chunk_size if chunk_size is not None else settings.chunk_size
        self.overlap = overlap if overlap is not None else settings.chunk_overlap
        self.max_retries = max_retries if max_retries is not None else settings.max_retries
        self.retry_base_delay = (
            retry_base_delay if retry_base_delay is not None else settings.retry_base_delay
        )
        self.model = model
        self.checkpoints = checkpoint_store or CheckpointStore(settings.checkpoint_dir)
        self.strategy = strategy or build_strategy(
            client, use_streaming=use_streaming, model=model, on_delta=on_delta
        )
        self._sleep = sleep
        self.state = ExtractorState.NOT_STARTED

    # ------------------------------------------------------------------
    # Document level
    async def extract_file(
        self,
        file_path: Union[str, Path],
        resume: bool = True,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ExtractionReport:
        """Extract structured data from the document at ``file_path``.

        Raises:
            FileNotFoundError: If ``file_path`` does not exist.  Nothing is
                read, written or called before this check.
        """
        path = Path(file_path)
        if not path.is_file():
            raise FileNotFoundError(f"File not found: {path}")
        text = path.read_text(encoding="utf-8")
        return await self.extract_text(text, str(path), resume=resume, on_progress=on_progress)

    async def extract_text(
        self,
        text: str,
        file_path: str,
        resume: bool = True,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ExtractionReport:
        """Extract from ``text``, checkpointing under the name ``file_path``."""
        started = time.perf_counter()

        self.state = ExtractorState.CHUNKING
        chunks = chunk_text(text, self.chunk_size, self.overlap)
        total = len(chunks)
        logger.info(f"Document split into {total} chunks ({self.chunk_size} tokens/chunk)")
        if total == 0:
            self.state = ExtractorState.DONE
            return ExtractionReport(
                file_path=file_path,
                result=reduce_results([]),
                total_chunks=0,
                successful_chunks=0,
                failed_chunks=0,
                elapsed_seconds=time.perf_counter() - started,
            )

        results: Dict[int, ChunkResult] = {}
        resumed = False
        if resume:
            checkpoint = self._load_checkpoint(file_path, total)
            if checkpoint is not None:
                self.state = ExtractorState.RESUMING
                results = checkpoint.results_by_index()
                resumed = True
                logger.info(
                    f"Resuming from checkpoint ({len(checkpoint.completed_chunks)} chunks already processed)"
                )

        self.state = ExtractorState.PROCESSING_CHUNKS
        pending = [c for c in chunks if not (c.index in results and results[c.index].success)]
        skipped = total - len(pending)
        logger.info(f"Processing {len(pending)} remaining chunks")

        for chunk in pending:
            result = await self.process_chunk(chunk, total)
            results[chunk.index] = result
            self._save_checkpoint(file_path, total, results)
            if on_progress is not None:
                on_progress(
                    ExtractionProgress(
                        chunk_index=chunk.index,
                        total_chunks=total,
                        completed=sum(1 for r in results.values() if r.success),
                        failed=sum(1 for r in results.values() if not r.success),
                        skipped=skipped,
                        success=result.success,
                        processing_time=result.processing_time,
                    )
                )

        self.state = ExtractorState.REDUCING
        ordered = [results[index] for index in sorted(results)]
        aggregate = reduce_results(ordered)
        successful = sum(1 for r in ordered if r.success)
        failed = len(ordered) - successful

        if failed == 0:
            try:
                self.checkpoints.clear(file_path)
            except CheckpointIOError as exc:
                logger.warning(f"Could not remove checkpoint: {exc}")
        else:
            logger.warning(f"{failed} chunk(s) failed; checkpoint kept for a later retry")

        self.state = ExtractorState.DONE
        return ExtractionReport(
            file_path=file_path,
            result=aggregate,
            total_chunks=total,
            successful_chunks=successful,
            failed_chunks=failed,
            elapsed_seconds=time.perf_counter() - started,
            resumed=resumed,
            chunk_results=ordered,
        )

    # ------------------------------------------------------------------
    # Chunk level
    async def process_chunk(self, chunk: DocumentChunk, total_chunks: int) -> ChunkResult:
        """Extract one chunk, retrying and falling back to a plain summary."""
        started = time.perf_counter()
        attempts = await self.run_attempts(build_chunk_prompt(chunk, total_chunks), chunk.index)
        elapsed_ms = (time.perf_counter() - started) * 1000.0

        if attempts.final is AttemptOutcome.SUCCESS:
            return ChunkResult(
                chunk_index=chunk.index,
                data=attempts.data,
                success=True,
                processing_time=elapsed_ms,
            )

        message = str(attempts.error)
        logger.error(f"Chunk {chunk.index + 1} failed after {len(attempts.outcomes)} attempts: {message}")
        summary = await self.fallback_summary(chunk)
        return ChunkResult(
            chunk_index=chunk.index,
            data=ChunkExtraction(summary=summary),
            success=False,
            error=message,
            processing_time=(time.perf_counter() - started) * 1000.0,
        )

    async def run_attempts(self, prompt: str, chunk_index: int = 0) -> ChunkAttempts:
        """Run the extraction strategy until it succeeds or attempts run out.

        Errors other than :class:`GenerationError` and :class:`ParseError`
        propagate to the caller.
        """
        history = ChunkAttempts()
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_incrementing(start=self.retry_base_delay, increment=self.retry_base_delay),
            retry=retry_if_exception_type(RETRYABLE_ERRORS),
            sleep=self._sleep,
            before_sleep=self._log_retry(chunk_index),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    try:
                        history.data = await self.strategy.extract(prompt)
                    except RETRYABLE_ERRORS:
                        history.outcomes.append(AttemptOutcome.RETRYABLE_FAILURE)
                        raise
                    history.outcomes.append(AttemptOutcome.SUCCESS)
        except RETRYABLE_ERRORS as exc:
            history.outcomes[-1] = AttemptOutcome.TERMINAL_FAILURE
            history.error = exc
        return history

    def _log_retry(self, chunk_index: int) -> Callable[[RetryCallState], None]:
        def log(state: RetryCallState) -> None:
            exc = state.outcome.exception() if state.outcome else None
            logger.warning(
                f"Chunk {chunk_index + 1} failed, retrying... "
                f"({state.attempt_number}/{self.max_retries}): {exc}"
            )

        return log

    async def fallback_summary(self, chunk: DocumentChunk) -> str:
        """Ask for a short plain-text summary of a chunk that failed extraction."""
        try:
            result = await self.client.generate_text(
                f"Provide a brief summary (2-3 sentences) of this document chunk:\n{chunk.text}",
                model=self.model,
                task="summarization",
            )
        except RETRYABLE_ERRORS as exc:
            return f"[Summary generation failed: {exc}]"
        return result.text

    # ------------------------------------------------------------------
    # Checkpoints
    def _load_checkpoint(self, file_path: str, total: int) -> Optional[Checkpoint]:
        try:
            checkpoint = self.checkpoints.load(file_path)
        except CheckpointIOError as exc:
            logger.warning(f"Ignoring unreadable checkpoint: {exc}")
            return None
        if checkpoint is None:
            return None
        if checkpoint.file_path != file_path:
            logger.warning(
                f"Ignoring checkpoint written for {checkpoint.file_path}; processing {file_path}"
            )
            return None
        if checkpoint.total_chunks != total:
            logger.warning(
                f"Ignoring checkpoint for {checkpoint.total_chunks} chunks; document now has {total}"
            )
            return None
        return checkpoint

    def _save_checkpoint(self, file_path: str, total: int, results: Dict[int, ChunkResult]) -> None:
        try:
            self.checkpoints.save(Checkpoint.from_results(file_path, total, results))
        except CheckpointIOError as exc:
            logger.warning(f"Checkpoint not saved: {exc}")
