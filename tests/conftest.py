"""Shared fixtures: a scripted association client, a recording ingestor and progress sink."""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Sequence

import pytest
from pydicom import Dataset

from dicom_query.core.association import QueryResult, ReleaseKind, Result
from dicom_query.core.exceptions import (
    NegotiationError,
    NetworkInitError,
    QueryFailedError,
)


def make_record(level: str = "STUDY", **attrs: Any) -> Dataset:
    """Build a C-FIND response identifier."""
    ds = Dataset()
    ds.QueryRetrieveLevel = level
    for keyword, value in attrs.items():
        setattr(ds, keyword, value)
    return ds


class FakeAssociationClient:
    """Association client that answers queries from a script.

    ``study_records`` answers the STUDY query. ``series_records`` maps a
    StudyInstanceUID to the records of its SERIES query. UIDs listed in
    ``failing_studies`` make that series query fail.
    """

    def __init__(
        self,
        study_records: Optional[List[Dataset]] = None,
        series_records: Optional[Dict[str, List[Dataset]]] = None,
        init_ok: bool = True,
        negotiate_ok: bool = True,
        accepted: Optional[Dict[str, int]] = None,
        study_query_ok: bool = True,
        failing_studies: Sequence[str] = (),
        on_series_query: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.study_records = study_records or []
        self.series_records = series_records or {}
        self.init_ok = init_ok
        self.negotiate_ok = negotiate_ok
        self.accepted = {} if accepted is None else accepted
        self.study_query_ok = study_query_ok
        self.failing_studies = set(failing_studies)
        self.on_series_query = on_series_query

        self.calls: List[str] = []
        self.settings: Dict[str, Any] = {}
        self.contexts: List[tuple] = []
        self.probes: List[str] = []
        self.sent: List[tuple] = []
        self.closed: List[ReleaseKind] = []

    def set_local_title(self, title: str) -> None:
        self.settings["local_title"] = title

    def set_peer_title(self, title: str) -> None:
        self.settings["peer_title"] = title

    def set_peer_host(self, host: str) -> None:
        self.settings["peer_host"] = host

    def set_peer_port(self, port: int) -> None:
        self.settings["peer_port"] = port

    def add_query_context(self, model_uid: str, transfer_syntaxes: Sequence[str]) -> None:
        self.contexts.append((model_uid, list(transfer_syntaxes)))

    def initialize_network(self) -> Result:
        self.calls.append("initialize_network")
        if self.init_ok:
            return Result()
        return Result(error=NetworkInitError("socket layer unavailable"))

    def negotiate_association(self) -> Result:
        self.calls.append("negotiate_association")
        if self.negotiate_ok:
            return Result()
        return Result(error=NegotiationError("Association rejected"))

    def find_context_id(self, model_uid: str, transfer_syntax: str) -> Optional[int]:
        self.probes.append(transfer_syntax)
        return self.accepted.get(transfer_syntax)

    def send_query(self, context_id: Optional[int], dataset: Dataset) -> QueryResult:
        level = dataset.QueryRetrieveLevel
        link = str(dataset.StudyInstanceUID)
        self.calls.append(f"send_query:{level}")
        self.sent.append((context_id, level, link, dataset))

        if level == "STUDY":
            if not self.study_query_ok:
                return QueryResult(records=list(self.study_records),
                                   error=QueryFailedError("C-FIND failed", status=0xA700))
            return QueryResult(records=list(self.study_records))

        if self.on_series_query:
            self.on_series_query(link)
        if link in self.failing_studies:
            return QueryResult(error=QueryFailedError("C-FIND failed", status=0xC000))
        return QueryResult(records=list(self.series_records.get(link, [])))

    def close(self, release_kind: ReleaseKind) -> None:
        self.calls.append("close")
        self.closed.append(release_kind)

    @property
    def series_links(self) -> List[str]:
        return [link for _, level, link, _ in self.sent if level == "SERIES"]


class RecordingIngestor:
    """Result ingestor that keeps every inserted record in memory."""

    def __init__(self, is_open: bool = True) -> None:
        self._is_open = is_open
        self.records: List[Dataset] = []

    @property
    def is_open(self) -> bool:
        return self._is_open

    def insert(self, record: Dataset) -> bool:
        self.records.append(record)
        return True


class RecordingProgress:
    """Progress reporter that records the interleaved event trace."""

    def __init__(self) -> None:
        self.events: List[tuple] = []

    def report_message(self, text: str) -> None:
        self.events.append(("message", text))

    def report_progress(self, value: int) -> None:
        self.events.append(("progress", value))

    @property
    def values(self) -> List[int]:
        return [v for kind, v in self.events if kind == "progress"]

    @property
    def messages(self) -> List[str]:
        return [v for kind, v in self.events if kind == "message"]


@pytest.fixture
def ingestor() -> RecordingIngestor:
    return RecordingIngestor()


@pytest.fixture
def progress() -> RecordingProgress:
    return RecordingProgress()
