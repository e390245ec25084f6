"""
Handler debug recording.

In development every tool, resource and prompt invocation is appended to
a local JSON lines file together with its output.
"""

from pathlib import Path
from typing import Any, Optional, TextIO

import structlog


class DebugRecorder:
    """Appends timestamped handler input/output records; a no-op when disabled."""

    def __init__(self, path: Optional[Path] = None):
        self.path = path
        self._file: Optional[TextIO] = None
        self._logger: Any = None

    @property
    def enabled(self) -> bool:
        return self.path is not None

    def _get_logger(self) -> Any:
        if self._logger is None:
            self._file = open(self.path, "a", encoding="utf-8")
            self._logger = structlog.wrap_logger(
                structlog.PrintLogger(self._file),
                processors=[
                    structlog.processors.TimeStamper(fmt="iso"),
                    structlog.processors.JSONRenderer(default=str),
                ],
                wrapper_class=structlog.BoundLogger,
            )
        return self._logger

    def record(self, kind: str, name: str, input: Any, output: Any) -> None:
        if not self.enabled:
            return
        self._get_logger().msg(kind, name=name, input=input, output=output)

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None
            self._logger = None
