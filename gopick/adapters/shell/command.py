"""
Shell command adapter — the single place gopick starts subprocesses.

Two shapes:

- ``run_command``: run to completion, capture output, return a result
  dict (``{"ok": True, "stdout": ...}`` / ``{"ok": False, "error": ...}``).
- ``stream_command``: generator of line events while the process runs,
  ending with one ``exit`` event. Used for ``go get`` progress.

Commands are argument lists, never shell strings.
"""

from __future__ import annotations

import logging
import queue
import subprocess
import threading
import time
from typing import IO, Any, Iterator

logger = logging.getLogger(__name__)


def run_command(cmd: list[str], *, timeout: float = 30, cwd: str | None = None) -> dict[str, Any]:
    """Run ``cmd`` to completion.

    Returns:
        ``{"ok": True, "stdout": "...", "elapsed_ms": N}`` on exit code 0,
        ``{"ok": False, "error": "...", "stderr": "...", ...}`` otherwise.
        Never raises for process failures.
    """
    logger.debug("Running: %s", " ".join(cmd))
    start = time.monotonic()
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout,
            cwd=cwd,
        )
    except FileNotFoundError:
        return {"ok": False, "error": f"Command not found: {cmd[0]}"}
    except subprocess.TimeoutExpired:
        return {"ok": False, "error": f"Command timed out ({timeout}s)"}
    except OSError as e:
        return {"ok": False, "error": str(e)}

    elapsed_ms = int((time.monotonic() - start) * 1000)
    if result.returncode == 0:
        return {"ok": True, "stdout": result.stdout, "elapsed_ms": elapsed_ms}

    return {
        "ok": False,
        "error": f"Command failed (exit {result.returncode})",
        "returncode": result.returncode,
        "stdout": result.stdout,
        "stderr": result.stderr,
        "elapsed_ms": elapsed_ms,
    }


def stream_command(cmd: list[str], *, cwd: str | None = None) -> Iterator[dict[str, Any]]:
    """Run ``cmd`` and yield its output line by line.

    Yields:
        ``{"type": "stdout", "line": ...}`` and ``{"type": "stderr", "line": ...}``
        in arrival order, then exactly one
        ``{"type": "exit", "returncode": N}``.

    Raises:
        OSError: If the process cannot be started (e.g. binary missing).
    """
    logger.debug("Streaming: %s", " ".join(cmd))
    proc = subprocess.Popen(
        cmd,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        cwd=cwd,
    )

    lines: queue.Queue[tuple[str, str | None]] = queue.Queue()

    def _pump(stream: IO[str], kind: str) -> None:
        try:
            for line in stream:
                lines.put((kind, line.rstrip("\n")))
        finally:
            stream.close()
            lines.put((kind, None))

    readers = [
        threading.Thread(target=_pump, args=(proc.stdout, "stdout"), daemon=True),
        threading.Thread(target=_pump, args=(proc.stderr, "stderr"), daemon=True),
    ]
    for t in readers:
        t.start()

    open_streams = len(readers)
    try:
        while open_streams:
            kind, line = lines.get()
            if line is None:
                open_streams -= 1
                continue
            yield {"type": kind, "line": line}
    finally:
        if open_streams and proc.poll() is None:
            # Consumer stopped early.
            proc.kill()
        for t in readers:
            t.join(timeout=1)
        proc.wait()

    yield {"type": "exit", "returncode": proc.returncode}
