"""Configuration loaded from the environment and ``.env``."""

from .settings import Settings, settings  # noqa: F401
