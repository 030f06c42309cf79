"""JSON checkpoint files for resumable extractions.

One checkpoint per input document lives at
``{directory}/{stem}.checkpoint.json``.  Writes go to a temporary file in
the same directory that is then renamed over the target, so a crash never
leaves a half-written checkpoint behind.  Every filesystem or decoding
failure is raised as :class:`CheckpointIOError`.
"""

import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError

from ..core.errors import CheckpointIOError
from ..extraction.models import Checkpoint
from ..utils.logging import get_logger

logger = get_logger(__name__)


class CheckpointStore:
    """Load, save and delete extraction checkpoints."""

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)

    def path_for(self, file_path: Union[str, Path]) -> Path:
        return self.directory / f"{Path(file_path).stem}.checkpoint.json"

    def load(self, file_path: Union[str, Path]) -> Optional[Checkpoint]:
        """Return the checkpoint for ``file_path`` or ``None`` when there is none."""
        path = self.path_for(file_path)
        if not path.exists():
            return None
        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise CheckpointIOError(f"Could not read checkpoint {path}: {exc}") from exc
        try:
            checkpoint = Checkpoint.model_validate_json(raw)
        except ValidationError as exc:
            raise CheckpointIOError(f"Corrupt checkpoint {path}: {exc}") from exc
        logger.debug(f"Loaded checkpoint {path} ({len(checkpoint.completed_chunks)} completed)")
        return checkpoint

    def save(self, checkpoint: Checkpoint) -> Path:
        """Atomically write ``checkpoint`` and return its path."""
        path = self.path_for(checkpoint.file_path)
        tmp_name = None
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.directory, prefix=f".{path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(checkpoint.model_dump_json(by_alias=True, indent=2))
            os.replace(tmp_name, path)
        except OSError as exc:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise CheckpointIOError(f"Could not write checkpoint {path}: {exc}") from exc
        return path

    def clear(self, file_path: Union[str, Path]) -> bool:
        """Delete the checkpoint for ``file_path``; returns whether one existed."""
        path = self.path_for(file_path)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise CheckpointIOError(f"Could not delete checkpoint {path}: {exc}") from exc
        logger.info(f"Checkpoint cleared: {path}")
        return True
