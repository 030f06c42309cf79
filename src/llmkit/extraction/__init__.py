"""Structured extraction from documents.

Modules:

  chunking: Sentence-aware splitting of long text into overlapping chunks.
  strategies: Buffered and streaming ways to obtain a validated payload.
  extractor: The resumable ``ChunkedExtractor`` and the ``reduce_results``
      aggregation step.
  essay: Single-call insight extraction for short documents.
  models: Pydantic models for payloads, checkpoints and reports.
"""
