#!/usr/bin/env python
"""
Error taxonomy for hierarchical DICOM queries

These errors describe why a stage of a query run did not succeed. Association
clients hand them back inside result objects instead of raising them, and the
orchestrator decides per stage whether an error ends the run or is only
reported.
"""

from typing import Any, Dict, Optional


class DicomQueryError(Exception):
    """
    Base class for all query errors

    Attributes:
        message: Human-readable error description
        details: Optional dictionary with additional context
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if not self.details:
            return self.message
        detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
        return f"{self.message} ({detail_str})"


class NetworkInitError(DicomQueryError):
    """The network layer could not be initialized; the run cannot continue"""


class NegotiationError(DicomQueryError):
    """Association negotiation with the peer was rejected, aborted or timed out"""


class NoUsableContextError(DicomQueryError):
    """None of the offered transfer syntaxes was accepted for the query model"""


class QueryFailedError(DicomQueryError):
    """A single C-FIND request did not complete successfully"""

    def __init__(self, message: str, status: Optional[int] = None,
                 details: Optional[Dict[str, Any]] = None):
        self.status = status
        details = dict(details or {})
        if status is not None:
            details.setdefault('status', f"0x{status:04X}")
        super().__init__(message, details)


class MalformedRecordError(DicomQueryError):
    """A response record lacks an attribute the cascade needs"""

    def __init__(self, keyword: str, details: Optional[Dict[str, Any]] = None):
        self.keyword = keyword
        super().__init__(f"Response record is missing {keyword}", details)
