"""
TTY injection — push a command into the controlling terminal's input.

After the session exits, the generated ``go get`` command is placed on
the user's shell prompt as if typed (and optionally submitted) using
the ``TIOCSTI`` ioctl on ``/dev/tty``. Many systems restrict
``TIOCSTI`` (Linux ``dev.tty.legacy_tiocsti=0``, OpenBSD), so callers
must treat failure as normal and print the command instead.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

TTY_DEVICE = "/dev/tty"


class TTYInjectionError(Exception):
    """The command could not be injected into the terminal."""


def inject_command(command: str, press_enter: bool = False, *, device: str = TTY_DEVICE) -> None:
    """Stuff ``command`` into the terminal input buffer byte by byte.

    Args:
        command: Text to inject.
        press_enter: Also inject a trailing newline so the shell runs it.
        device: Terminal device to open.

    Raises:
        TTYInjectionError: On any failure (no tty, unsupported platform,
            ioctl refused).
    """
    try:
        import fcntl
        import termios
    except ImportError as e:
        raise TTYInjectionError("terminal injection is not supported on this platform") from e

    tiocsti = getattr(termios, "TIOCSTI", None)
    if tiocsti is None:
        raise TTYInjectionError("TIOCSTI is not available")

    payload = command.encode("utf-8")
    if press_enter:
        payload += b"\n"

    try:
        with open(device, "rb+", buffering=0) as tty:
            fd = tty.fileno()
            for byte in payload:
                fcntl.ioctl(fd, tiocsti, bytes([byte]))
    except OSError as e:
        raise TTYInjectionError(f"failed to inject input into {device}: {e}") from e

    logger.debug("Injected %d bytes into %s", len(payload), device)
