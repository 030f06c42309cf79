"""Error taxonomy shared by the router, the generation client and the extractor."""


class LLMKitError(Exception):
    """Base class for all errors raised by llmkit."""


class ConfigValidationError(LLMKitError, ValueError):
    """A router configuration was rejected (unknown task, negative latency bound...).

    Surfaced to the caller as-is; never retried.
    """


class NoViableModelError(LLMKitError):
    """No registered model satisfies the latency bound and fallback is disabled."""


class GenerationError(LLMKitError):
    """The generation API failed (network, HTTP status, rate limit, missing key)."""


class ParseError(LLMKitError):
    """A model response could not be parsed or did not match the expected schema."""


class CheckpointIOError(LLMKitError):
    """Reading, writing or deleting a checkpoint file failed."""
