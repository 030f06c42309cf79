"""Bundled sample documents."""

from pathlib import Path

DATA_DIR = Path(__file__).parent
SAMPLE_ESSAY = DATA_DIR / "essay.txt"
