#!/usr/bin/env python
"""
Progress reporting for query runs

A progress reporter receives two kinds of fire-and-forget notifications:
human-readable status text and an integer completion percentage.
"""

import logging
from typing import Callable, Optional, Protocol

logger = logging.getLogger('dicom_query.progress')


class ProgressReporter(Protocol):
    """Sink for status text and completion percentages (0-100)"""

    def report_message(self, text: str) -> None:
        ...

    def report_progress(self, value: int) -> None:
        ...


def _check_value(value: int) -> int:
    value = int(value)
    if not 0 <= value <= 100:
        raise ValueError(f"Progress value must be within [0, 100], got {value}")
    return value


class LoggingProgressReporter:
    """Writes progress notifications to the application log"""

    def __init__(self, log: Optional[logging.Logger] = None):
        self.log = log or logger

    def report_message(self, text: str) -> None:
        self.log.info(f"📝 {text}")

    def report_progress(self, value: int) -> None:
        self.log.info(f"📊 Progress: {_check_value(value)}%")


class CallbackProgressReporter:
    """
    Forwards progress notifications to plain callables

    Either callback may be omitted, in which case that kind of notification
    is dropped.
    """

    def __init__(self,
                 on_message: Optional[Callable[[str], None]] = None,
                 on_progress: Optional[Callable[[int], None]] = None):
        """
        Initialize the reporter

        Parameters:
        -----------
        on_message : callable, optional
            Called with each status message
        on_progress : callable, optional
            Called with each percentage value
        """
        self.on_message = on_message
        self.on_progress = on_progress

    def report_message(self, text: str) -> None:
        if self.on_message:
            self.on_message(text)

    def report_progress(self, value: int) -> None:
        value = _check_value(value)
        if self.on_progress:
            self.on_progress(value)
