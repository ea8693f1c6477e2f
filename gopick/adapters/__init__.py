"""Adapters — bindings to the outside world (HTTP, subprocesses, the terminal).

Public re-exports for convenient access.
"""

from gopick.adapters.http import HttpResponse, TransportError, http_get
from gopick.adapters.shell.command import run_command, stream_command
from gopick.adapters.shell.tty import TTYInjectionError, inject_command

__all__ = [
    "HttpResponse",
    "TTYInjectionError",
    "TransportError",
    "http_get",
    "inject_command",
    "run_command",
    "stream_command",
]
