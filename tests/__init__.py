"""Test suite for llmkit.

Unit tests cover the registry, telemetry, router, chunking, reduction and
checkpoint persistence; integration tests drive the generation client,
the chunked extractor, the web API and the CLI end to end. To run the
tests, execute `pytest` from the project root.
"""
