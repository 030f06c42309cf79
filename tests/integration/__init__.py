"""Integration tests for llmkit.

These run the extractor, generation client, web API and CLI together in
process.  HTTP traffic is mocked with respx and the generation API is
replaced by scripted strategies, so no network access is needed.
"""
