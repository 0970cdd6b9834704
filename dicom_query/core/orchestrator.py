#!/usr/bin/env python
"""
Hierarchical DICOM query

Runs a study-level C-FIND against a remote archive, then a series-level C-FIND
for every matched study, forwarding every matched record to a result ingestor
and reporting progress along the way.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Any, Callable, Dict, List, Mapping, Optional

from dicom_query.config import (
    DEFAULT_CALLED_AE_TITLE,
    DEFAULT_CALLING_AE_TITLE,
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEFAULT_SKIP_EMPTY_FILTERS,
)
from dicom_query.core.association import (
    STUDY_ROOT_FIND,
    TRANSFER_SYNTAX_PREFERENCE,
    AssociationClient,
    PynetdicomAssociationClient,
    ReleaseKind,
)
from dicom_query.core.dataset_builder import LINK_ATTRIBUTE, QueryDatasetBuilder, QueryLevel
from dicom_query.core.exceptions import DicomQueryError, MalformedRecordError, NoUsableContextError
from dicom_query.core.filters import translate_filters
from dicom_query.core.progress import ProgressReporter
from dicom_query.core.store import ResultIngestor

logger = logging.getLogger('dicom_query.query')


class DicomQuery:
    """
    Study/series C-FIND cascade against one remote archive

    A failure to initialize the network ends a run immediately. Everything
    after that is non-fatal: a missing presentation context, a failed study
    query or a failed series query is reported and the run carries on, so a
    run always finishes with a progress value of 100.
    """

    def __init__(self,
                 calling_ae_title: str = DEFAULT_CALLING_AE_TITLE,
                 called_ae_title: str = DEFAULT_CALLED_AE_TITLE,
                 host: str = DEFAULT_HOST,
                 port: int = DEFAULT_PORT,
                 filters: Optional[Mapping[str, Any]] = None,
                 client_factory: Callable[[], AssociationClient] = PynetdicomAssociationClient,
                 skip_empty_filters: bool = DEFAULT_SKIP_EMPTY_FILTERS):
        """
        Initialize the query

        Parameters:
        -----------
        calling_ae_title : str
            Our AE title
        called_ae_title : str
            AE title of the remote archive
        host : str
            Host name or IP address of the remote archive
        port : int
            Port of the remote archive
        filters : mapping, optional
            Filter set (Name, Study, Series, ID, Modalities)
        client_factory : callable
            Creates a fresh association client for each run
        skip_empty_filters : bool
            Leave empty text filters unconstrained instead of sending '**'
        """
        self.calling_ae_title = calling_ae_title
        self.called_ae_title = called_ae_title
        self.host = host
        self.port = port
        self.filters = dict(filters or {})
        self.client_factory = client_factory
        self.skip_empty_filters = skip_empty_filters

        self._study_instance_uids: List[str] = []
        self._run_errors: List[DicomQueryError] = []
        self._cancel_event = threading.Event()

    @property
    def filters(self) -> Dict[str, Any]:
        return dict(self._filters)

    @filters.setter
    def filters(self, filters: Mapping[str, Any]):
        self._filters = dict(filters or {})

    @property
    def study_instance_uids_queried(self) -> List[str]:
        """StudyInstanceUIDs matched by the most recent run, in response order"""
        return list(self._study_instance_uids)

    def add_study_instance_uid(self, study_uid: str):
        self._study_instance_uids.append(study_uid)

    @property
    def run_errors(self) -> List[DicomQueryError]:
        """Errors recorded by the most recent run, in the order they occurred"""
        return list(self._run_errors)

    def _record_error(self, error: Optional[DicomQueryError]):
        if error is not None:
            self._run_errors.append(error)

    def cancel(self):
        """Stop the run before its next series query; safe to call from another thread"""
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    @contextmanager
    def _session(self, client: AssociationClient):
        """Close the association exactly once, aborting it if the cascade raised"""
        release_kind = ReleaseKind.RELEASE
        try:
            yield client
        except BaseException:
            release_kind = ReleaseKind.ABORT
            raise
        finally:
            client.close(release_kind)

    def query(self, ingestor: ResultIngestor, progress: ProgressReporter):
        """
        Run the study/series cascade

        Parameters:
        -----------
        ingestor : ResultIngestor
            Receives every matched study and series record
        progress : ProgressReporter
            Receives status text and completion percentages
        """
        self._cancel_event.clear()

        def report(text: str, level: int = logging.INFO):
            logger.log(level, text)
            progress.report_message(text)

        if ingestor.is_open:
            report("Result store open in Query", logging.DEBUG)
        else:
            report("Result store not open in Query", logging.DEBUG)
        progress.report_progress(0)

        self._study_instance_uids = []
        self._run_errors = []
        builder = QueryDatasetBuilder()
        builder.reset()
        builder.set_level(QueryLevel.STUDY)
        builder.apply_filter_values(translate_filters(self._filters, skip_empty=self.skip_empty_filters))

        client = self.client_factory()
        client.set_local_title(self.calling_ae_title)
        client.set_peer_title(self.called_ae_title)
        client.set_peer_host(self.host)
        client.set_peer_port(self.port)

        report("Setting Transfer Syntaxes", logging.DEBUG)
        progress.report_progress(10)
        client.add_query_context(STUDY_ROOT_FIND, TRANSFER_SYNTAX_PREFERENCE)

        result = client.initialize_network()
        if not result:
            self._record_error(result.error)
            report(f"Error initializing the network: {result.error}", logging.ERROR)
            progress.report_progress(100)
            return

        report("Negotiating Association", logging.DEBUG)
        progress.report_progress(20)

        try:
            with self._session(client):
                result = client.negotiate_association()
                if not result:
                    self._record_error(result.error)
                    report(f"Association negotiation failed: {result.error}", logging.ERROR)

                self._query_studies(client, builder, ingestor, progress, report)
                self._query_series(client, builder, ingestor, progress, report)
        finally:
            progress.report_progress(100)

        logger.info(f"✅ Query completed - {len(self._study_instance_uids)} studies queried for series")

    def run_query(self, filters: Optional[Mapping[str, Any]], ingestor: ResultIngestor,
                  progress: ProgressReporter):
        """Replace the filter set, then run the cascade"""
        self.filters = filters
        self.query(ingestor, progress)

    def _ingest(self, ingestor: ResultIngestor, record):
        """Forward one record; a failing ingestor does not stop the run"""
        try:
            ingestor.insert(record)
        except Exception as e:
            logger.error(f"❌ Error storing record: {e}")

    def _query_studies(self, client, builder, ingestor, progress, report):
        """Send the STUDY query and collect the parent StudyInstanceUIDs"""
        progress.report_progress(30)

        context_id = None
        for transfer_syntax in TRANSFER_SYNTAX_PREFERENCE:
            context_id = client.find_context_id(STUDY_ROOT_FIND, transfer_syntax)
            if context_id is not None:
                break

        if context_id is None:
            self._record_error(NoUsableContextError("No offered transfer syntax was accepted",
                                                    details={'model': STUDY_ROOT_FIND}))
            report("Failed to find acceptable presentation context", logging.ERROR)
        else:
            report("Found useful presentation context")
        progress.report_progress(40)

        result = client.send_query(context_id, builder.snapshot())
        if result:
            report("Find succeeded", logging.DEBUG)
        else:
            self._record_error(result.error)
            report(f"Find failed: {result.error}", logging.ERROR)
        progress.report_progress(50)

        for record in result.records:
            if record is None:
                continue
            self._ingest(ingestor, record)

            study_uid = str(getattr(record, LINK_ATTRIBUTE, '') or '').strip()
            if not study_uid:
                self._record_error(MalformedRecordError(LINK_ATTRIBUTE))
                logger.warning(f"⚠️ Skipping study record without {LINK_ATTRIBUTE}")
                continue
            self.add_study_instance_uid(study_uid)

        logger.info(f"📚 STUDY query matched {len(self._study_instance_uids)} studies")

    def _query_series(self, client, builder, ingestor, progress, report):
        """Send one SERIES query per collected StudyInstanceUID"""
        builder.set_level(QueryLevel.SERIES)

        study_uids = list(self._study_instance_uids)
        if not study_uids:
            return
        progress_ratio = 25.0 / len(study_uids)

        for i, study_uid in enumerate(study_uids):
            if self.cancelled:
                report("Query cancelled", logging.WARNING)
                break

            step = int(50 + progress_ratio * i)
            report(f"Starting Series C-FIND for Study: {study_uid}", logging.DEBUG)
            progress.report_progress(step)

            builder.set_link_value(study_uid)
            result = client.send_query(None, builder.snapshot())
            if result:
                for record in result.records:
                    if record is not None:
                        self._ingest(ingestor, record)
                report(f"Find succeeded for Study: {study_uid}", logging.DEBUG)
            else:
                self._record_error(result.error)
                report(f"Find failed for Study: {study_uid}: {result.error}", logging.ERROR)
            progress.report_progress(step)
