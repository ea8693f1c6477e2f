"""
Atomic file writes — write to a temp file, then rename over the target.

Every persisted file in gopick (cache records, the history log, the
default config) goes through here so a crash or a concurrent reader
never observes a half-written file: readers see either the old
complete file or the new complete file.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)


def atomic_write_text(path: Path, content: str, *, prefix: str = ".gopick_") -> None:
    """Write ``content`` to ``path`` atomically.

    The temp file lives in the target's directory so the final rename
    never crosses a filesystem. Each writer gets its own temp name, so
    concurrent writers to the same target never share a temp file; the
    last rename wins.

    Args:
        path: Target file. Parent directories are created.
        content: Text to write (UTF-8).
        prefix: Temp file name prefix.

    Raises:
        OSError: If the temp file cannot be written or renamed.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=prefix, suffix=".tmp")
    tmp = Path(tmp_path)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        tmp.replace(path)
        logger.debug("Wrote %s", path)
    except Exception:
        tmp.unlink(missing_ok=True)
        raise
