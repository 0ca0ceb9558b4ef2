# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2026 Sellsy SDK Authors

"""
Per-call traffic log.

Each call produces one outbound line and one inbound line sharing the call id:

    [3f2a...]2026-01-05T10:12:00+01:00 --> {"method":"Infos.getInfos","params":{}}
    [3f2a...]2026-01-05T10:12:01+01:00 <-- {"consumerdatas": ...}
"""

import sys
import threading
from datetime import datetime
from typing import Optional, TextIO

from loguru import logger


OUTBOUND = "-->"
INBOUND = "<--"


def format_line(call_id: str, direction: str, message: str, when: Optional[datetime] = None) -> str:
    when = when or datetime.now().astimezone()
    return f"[{call_id}]{when.isoformat(timespec='seconds')} {direction} {message}"


class ActivityLogger:
    """
    Sink for call traffic.

    Subclasses implement emit(); log_outbound/log_inbound format the line.
    """

    def log_outbound(self, call_id: str, message: str) -> None:
        self.emit(call_id, OUTBOUND, format_line(call_id, OUTBOUND, message))

    def log_inbound(self, call_id: str, message: str) -> None:
        self.emit(call_id, INBOUND, format_line(call_id, INBOUND, message))

    def emit(self, call_id: str, direction: str, line: str) -> None:
        raise NotImplementedError


class NullActivityLogger(ActivityLogger):
    """Discard all traffic."""

    def emit(self, call_id: str, direction: str, line: str) -> None:
        pass


class StreamActivityLogger(ActivityLogger):
    """Write lines to a text stream (stdout by default)."""

    def __init__(self, stream: Optional[TextIO] = None):
        self._stream = stream
        self._lock = threading.Lock()

    def emit(self, call_id: str, direction: str, line: str) -> None:
        stream = self._stream or sys.stdout
        with self._lock:
            stream.write(line + "\n")
            stream.flush()


class FileActivityLogger(ActivityLogger):
    """Append lines to a log file."""

    def __init__(self, path: str):
        self.path = path
        self._lock = threading.Lock()

    def emit(self, call_id: str, direction: str, line: str) -> None:
        with self._lock:
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(line + "\n")


class LoguruActivityLogger(ActivityLogger):
    """Route lines through loguru with call_id/direction bound as extras."""

    def __init__(self, level: str = "DEBUG"):
        self.level = level

    def emit(self, call_id: str, direction: str, line: str) -> None:
        logger.bind(call_id=call_id, direction=direction).log(self.level, line)


def activity_logger_for(setting: Optional[str]) -> ActivityLogger:
    """
    Resolve the activity_log config value.

    "loguru" (or unset), "stdout", "off", or a file path.
    """
    if not setting or setting == "loguru":
        return LoguruActivityLogger()
    if setting == "stdout":
        return StreamActivityLogger()
    if setting == "off":
        return NullActivityLogger()
    return FileActivityLogger(setting)
