"""llmkit - LLM API utilities.

Model routing over a static registry informed by call telemetry,
resumable chunked extraction of structured data from large documents,
and a handful of structured-output demos.
"""

__version__ = "0.1.0"
