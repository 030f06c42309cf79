"""Models for chunked document extraction.

``ChunkExtraction`` is the structured payload the model is asked to
produce for every chunk: a key takeaway, the companies mentioned, business
and technical concepts, notable quotes and a short summary.  The
remaining models describe how the extractor tracks chunks
(``ChunkResult``), persists progress (``Checkpoint``) and reports the
aggregated outcome (``ExtractionResult`` and ``ExtractionReport``).

Models that are written to disk use camelCase keys on the wire.
"""

from __future__ import annotations

import time
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from ..core.models import CamelModel


class Quote(BaseModel):
    """A notable quote and, when known, who said it."""

    quote: str
    speaker: Optional[str] = None


class Concepts(BaseModel):
    business: List[str] = Field(default_factory=list)
    technical: List[str] = Field(default_factory=list)


class ChunkExtraction(CamelModel):
    """Structured data extracted from one chunk of a document."""

    key_takeaway: str = Field("", description="Main insight of this section")
    companies: List[str] = Field(default_factory=list, description="Companies mentioned in this section")
    concepts: Concepts = Field(default_factory=Concepts)
    quotes: List[Quote] = Field(default_factory=list, description="Notable quotes with speaker")
    summary: str = Field("", description="Brief summary of this section")


class ChunkResult(CamelModel):
    """Outcome of processing one chunk."""

    chunk_index: int = Field(..., ge=0)
    data: ChunkExtraction = Field(default_factory=ChunkExtraction)
    success: bool
    error: Optional[str] = None
    processing_time: float = Field(0.0, ge=0.0, description="Milliseconds")


class Checkpoint(CamelModel):
    """Resumable progress of one document extraction.

    ``completed_chunks`` always equals the set of chunk indices whose
    result succeeded; construct checkpoints through :meth:`from_results`
    to keep that true.
    """

    file_path: str
    total_chunks: int = Field(..., ge=1)
    completed_chunks: List[int] = Field(default_factory=list)
    chunk_results: List[ChunkResult] = Field(default_factory=list)
    timestamp: float = Field(default_factory=lambda: time.time() * 1000.0, description="Unix ms")

    @model_validator(mode="after")
    def check_completed(self) -> "Checkpoint":
        for index in self.completed_chunks:
            if not 0 <= index < self.total_chunks:
                raise ValueError(f"completed chunk {index} outside [0, {self.total_chunks})")
        indices = [result.chunk_index for result in self.chunk_results]
        for index in indices:
            if index >= self.total_chunks:
                raise ValueError(f"chunk result {index} outside [0, {self.total_chunks})")
        if len(set(indices)) != len(indices):
            raise ValueError("duplicate chunk results")
        succeeded = {result.chunk_index for result in self.chunk_results if result.success}
        if set(self.completed_chunks) != succeeded:
            raise ValueError("completedChunks does not match the successful chunk results")
        return self

    @classmethod
    def from_results(
        cls, file_path: str, total_chunks: int, results: Dict[int, ChunkResult]
    ) -> "Checkpoint":
        ordered = [results[index] for index in sorted(results)]
        return cls(
            file_path=file_path,
            total_chunks=total_chunks,
            completed_chunks=[result.chunk_index for result in ordered if result.success],
            chunk_results=ordered,
        )

    def results_by_index(self) -> Dict[int, ChunkResult]:
        return {result.chunk_index: result for result in self.chunk_results}


class ExtractionResult(CamelModel):
    """Aggregate of every successful chunk of a document."""

    key_takeaway: str
    companies: List[str] = Field(default_factory=list)
    concepts: Concepts = Field(default_factory=Concepts)
    quotes: List[Quote] = Field(default_factory=list)
    summary: str = ""


class ExtractionProgress(BaseModel):
    """Snapshot passed to progress callbacks after each chunk."""

    chunk_index: int
    total_chunks: int
    completed: int
    failed: int
    skipped: int = 0
    success: bool
    processing_time: float = 0.0

    @property
    def done(self) -> int:
        return self.completed + self.failed


class ExtractionReport(BaseModel):
    """Result of a chunked extraction run plus its benchmark figures."""

    file_path: str
    result: ExtractionResult
    total_chunks: int
    successful_chunks: int
    failed_chunks: int
    elapsed_seconds: float
    resumed: bool = False
    chunk_results: List[ChunkResult] = Field(default_factory=list)

    @property
    def success_rate(self) -> float:
        """Percentage of chunks that succeeded."""
        if not self.total_chunks:
            return 0.0
        return self.successful_chunks / self.total_chunks * 100.0

    @property
    def average_chunk_seconds(self) -> float:
        """Mean processing time of successful chunks, in seconds."""
        times = [r.processing_time for r in self.chunk_results if r.success]
        if not times:
            return 0.0
        return sum(times) / len(times) / 1000.0

    @property
    def failures(self) -> List[ChunkResult]:
        return [r for r in self.chunk_results if not r.success]
