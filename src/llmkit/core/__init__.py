"""Shared error types and model base classes."""

from .errors import (  # noqa: F401
    CheckpointIOError,
    ConfigValidationError,
    GenerationError,
    LLMKitError,
    NoViableModelError,
    ParseError,
)
