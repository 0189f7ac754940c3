"""Change-aware writing of the files this tool is authoritative over."""

import logging
import os
from enum import Enum
from pathlib import Path

from .errors import ArtifactIOError

CONFIG_FILE_MODE = 0o600
SCRIPT_FILE_MODE = 0o755

logger = logging.getLogger(__name__)


class WriteOutcome(Enum):
    """What write_if_changed did to the target file."""

    UNCHANGED = "unchanged"
    WRITTEN = "written"


def write_if_changed(path: Path, content: bytes, mode: int) -> WriteOutcome:
    """
    Write ``content`` to ``path`` only when it differs from what is there.

    A file whose bytes already match is left alone entirely, including its
    permission bits. After a write the mode is set to exactly ``mode``.

    Args:
        path: Target file
        content: Desired file content
        mode: Permission bits to apply after writing (e.g. 0o600)

    Returns:
        WriteOutcome.WRITTEN or WriteOutcome.UNCHANGED

    Raises:
        ArtifactIOError: reading, writing or chmod failed
    """
    path = Path(path)

    try:
        if path.exists() and path.read_bytes() == content:
            logger.debug(f"File up to date: {path}")
            return WriteOutcome.UNCHANGED

        logger.debug(f"Writing file: {path}")
        # New files start at ``mode``; chmod also covers existing files and the umask.
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
        with os.fdopen(fd, "wb") as f:
            f.write(content)
        os.chmod(path, mode)
    except OSError as e:
        raise ArtifactIOError(path, e) from e

    return WriteOutcome.WRITTEN


def ensure_directory(path: Path) -> None:
    """Create ``path`` and its parents if missing."""
    try:
        Path(path).mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ArtifactIOError(path, e) from e
