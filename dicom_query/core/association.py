#!/usr/bin/env python
"""
Association client for C-FIND queries

Defines the interface the query orchestrator uses to talk to a remote archive
and a pynetdicom-backed implementation of it. Every network operation reports
its outcome as a result value; errors are returned, not raised.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Protocol, Sequence, Tuple

from pydicom import Dataset
from pydicom.uid import ExplicitVRBigEndian, ExplicitVRLittleEndian, ImplicitVRLittleEndian
from pynetdicom import AE
from pynetdicom.sop_class import StudyRootQueryRetrieveInformationModelFind

from dicom_query.config import DEFAULT_ACSE_TIMEOUT, DEFAULT_DIMSE_TIMEOUT, DEFAULT_NETWORK_TIMEOUT
from dicom_query.core.exceptions import (
    DicomQueryError,
    NegotiationError,
    NetworkInitError,
    QueryFailedError,
)

logger = logging.getLogger('dicom_query.association')

STUDY_ROOT_FIND = StudyRootQueryRetrieveInformationModelFind

# Offered for the query model and probed in this order when looking up a context
TRANSFER_SYNTAX_PREFERENCE = (
    ExplicitVRLittleEndian,
    ExplicitVRBigEndian,
    ImplicitVRLittleEndian,
)

PENDING_STATUSES = (0xFF00, 0xFF01)
SUCCESS_STATUS = 0x0000

MAX_AE_TITLE_LENGTH = 16


class ReleaseKind(Enum):
    """How an association is closed"""

    RELEASE = 'release'
    ABORT = 'abort'


@dataclass
class Result:
    """Outcome of a network operation; falsy when it carries an error"""

    error: Optional[DicomQueryError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def __bool__(self) -> bool:
        return self.ok


@dataclass
class QueryResult(Result):
    """Outcome of one C-FIND request and the identifiers it matched"""

    records: List[Dataset] = field(default_factory=list)


class AssociationClient(Protocol):
    """Network session used by the query orchestrator"""

    def set_local_title(self, title: str) -> None: ...

    def set_peer_title(self, title: str) -> None: ...

    def set_peer_host(self, host: str) -> None: ...

    def set_peer_port(self, port: int) -> None: ...

    def add_query_context(self, model_uid: str, transfer_syntaxes: Sequence[str]) -> None: ...

    def initialize_network(self) -> Result: ...

    def negotiate_association(self) -> Result: ...

    def find_context_id(self, model_uid: str, transfer_syntax: str) -> Optional[int]: ...

    def send_query(self, context_id: Optional[int], dataset: Dataset) -> QueryResult: ...

    def close(self, release_kind: ReleaseKind) -> None: ...


class PynetdicomAssociationClient:
    """
    Association client implemented with pynetdicom

    One instance serves exactly one session: configure it, initialize the
    network, negotiate, send any number of queries and close it once.
    """

    def __init__(self,
                 acse_timeout: float = DEFAULT_ACSE_TIMEOUT,
                 dimse_timeout: float = DEFAULT_DIMSE_TIMEOUT,
                 network_timeout: float = DEFAULT_NETWORK_TIMEOUT):
        """
        Initialize the client

        Parameters:
        -----------
        acse_timeout : float
            Seconds to wait for association related messages
        dimse_timeout : float
            Seconds to wait for each C-FIND response
        network_timeout : float
            Seconds of network inactivity before the association is aborted
        """
        self.acse_timeout = acse_timeout
        self.dimse_timeout = dimse_timeout
        self.network_timeout = network_timeout

        self.local_title = None
        self.peer_title = None
        self.peer_host = None
        self.peer_port = None
        self.contexts: List[Tuple[str, List[str]]] = []

        self.ae = None
        self.assoc = None

    def set_local_title(self, title: str) -> None:
        self.local_title = title

    def set_peer_title(self, title: str) -> None:
        self.peer_title = title

    def set_peer_host(self, host: str) -> None:
        self.peer_host = host

    def set_peer_port(self, port: int) -> None:
        self.peer_port = port

    def add_query_context(self, model_uid: str, transfer_syntaxes: Sequence[str]) -> None:
        self.contexts.append((model_uid, list(transfer_syntaxes)))

    @property
    def is_established(self) -> bool:
        return self.assoc is not None and self.assoc.is_established

    def _validate_settings(self):
        """Raise ValueError for connection settings pynetdicom cannot use"""
        for name, title in (('local', self.local_title), ('peer', self.peer_title)):
            if not title or not str(title).strip():
                raise ValueError(f"The {name} AE title is empty")
            if len(str(title)) > MAX_AE_TITLE_LENGTH:
                raise ValueError(f"The {name} AE title '{title}' exceeds {MAX_AE_TITLE_LENGTH} characters")
            if '\\' in str(title):
                raise ValueError(f"The {name} AE title '{title}' contains a backslash")
        if not self.peer_host:
            raise ValueError("The peer host is empty")
        if not isinstance(self.peer_port, int) or not 0 < self.peer_port < 65536:
            raise ValueError(f"Invalid peer port: {self.peer_port} (must be 1-65535)")
        if not self.contexts:
            raise ValueError("No query presentation context was added")

    def initialize_network(self) -> Result:
        """Validate the settings and build the application entity"""
        try:
            self._validate_settings()

            ae = AE(ae_title=self.local_title)
            ae.acse_timeout = self.acse_timeout
            ae.dimse_timeout = self.dimse_timeout
            ae.network_timeout = self.network_timeout
            for model_uid, transfer_syntaxes in self.contexts:
                ae.add_requested_context(model_uid, transfer_syntax=transfer_syntaxes)
        except (ValueError, TypeError, RuntimeError) as e:
            logger.error(f"Error initializing the network: {e}")
            return Result(error=NetworkInitError(
                f"Error initializing the network: {e}",
                details={'peer': f"{self.peer_title}@{self.peer_host}:{self.peer_port}"},
            ))

        self.ae = ae
        logger.debug(f"Network initialized for {self.local_title} with {len(self.contexts)} context(s)")
        return Result()

    def negotiate_association(self) -> Result:
        """Request an association with the peer"""
        if self.ae is None:
            return Result(error=NegotiationError("Network is not initialized"))

        peer = f"{self.peer_title}@{self.peer_host}:{self.peer_port}"
        logger.info(f"🔗 Requesting association with {peer}")
        try:
            self.assoc = self.ae.associate(self.peer_host, self.peer_port, ae_title=self.peer_title)
        except (OSError, RuntimeError, ValueError) as e:
            logger.error(f"Association request to {peer} failed: {e}")
            return Result(error=NegotiationError(f"Association request failed: {e}", details={'peer': peer}))

        if self.assoc.is_established:
            logger.info(f"🔗 Established association with {peer}")
            return Result()

        if self.assoc.is_rejected:
            reason = "rejected"
        elif self.assoc.is_aborted:
            reason = "aborted"
        else:
            reason = "not established"
        logger.error(f"❌ Association with {peer} {reason}")
        return Result(error=NegotiationError(f"Association {reason}", details={'peer': peer}))

    def _accepted_contexts(self, model_uid: Optional[str] = None):
        if not self.is_established:
            return []
        return [
            cx for cx in self.assoc.accepted_contexts
            if model_uid is None or cx.abstract_syntax == model_uid
        ]

    def find_context_id(self, model_uid: str, transfer_syntax: str) -> Optional[int]:
        """Return the id of the accepted context for this model and transfer syntax"""
        for cx in self._accepted_contexts(model_uid):
            if transfer_syntax in cx.transfer_syntax:
                return cx.context_id
        return None

    def _query_model(self, context_id: Optional[int]) -> Optional[str]:
        """Resolve the query model to send with; None means any accepted query context"""
        if context_id is None:
            return self.contexts[0][0] if self.contexts else None
        for cx in self._accepted_contexts():
            if cx.context_id == context_id:
                return cx.abstract_syntax
        return None

    def send_query(self, context_id: Optional[int], dataset: Dataset) -> QueryResult:
        """
        Send a C-FIND request and collect the matched identifiers

        Parameters:
        -----------
        context_id : int or None
            Accepted presentation context to use, or None for any accepted
            context of the registered query model
        dataset : Dataset
            The query identifier

        Returns:
        --------
        QueryResult: Identifiers received before the final status, plus an
        error if the request did not end with Success
        """
        if not self.is_established:
            return QueryResult(error=QueryFailedError("No association is established"))

        model_uid = self._query_model(context_id)
        if model_uid is None:
            return QueryResult(error=QueryFailedError(
                "Presentation context was not accepted", details={'context_id': context_id}
            ))

        records = []
        try:
            for status, identifier in self.assoc.send_c_find(dataset, model_uid):
                if not status:
                    return QueryResult(records=records, error=QueryFailedError(
                        "Connection timed out, was aborted or received an invalid response"
                    ))

                code = status.Status
                if code in PENDING_STATUSES:
                    if identifier is not None:
                        records.append(identifier)
                    continue
                if code == SUCCESS_STATUS:
                    return QueryResult(records=records)
                return QueryResult(records=records, error=QueryFailedError("C-FIND failed", status=code))
        except (ValueError, RuntimeError) as e:
            return QueryResult(records=records, error=QueryFailedError(f"C-FIND could not be sent: {e}"))

        return QueryResult(records=records, error=QueryFailedError("C-FIND ended without a final status"))

    def close(self, release_kind: ReleaseKind) -> None:
        """Release or abort the association"""
        if not self.is_established:
            logger.debug("No established association to close")
            return

        if release_kind is ReleaseKind.ABORT:
            logger.warning(f"Aborting association with {self.peer_title}")
            self.assoc.abort()
        else:
            self.assoc.release()
            logger.info(f"🔗 Released association with {self.peer_title}")
