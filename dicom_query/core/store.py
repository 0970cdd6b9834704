#!/usr/bin/env python
"""
Local store for C-FIND results

Persists matched study and series records as DICOM JSON in a
patient/study/series directory hierarchy
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Protocol

from pydicom import Dataset

from dicom_query.core.exceptions import MalformedRecordError
from dicom_query.utils import json_utils

logger = logging.getLogger('dicom_query.store')

STUDY_FILENAME = 'study.json'
SERIES_DIRNAME = 'series'


class ResultIngestor(Protocol):
    """Receives every record matched by a query run"""

    @property
    def is_open(self) -> bool: ...

    def insert(self, record: Dataset) -> Optional[bool]: ...


def _sanitize(value: str, default: str = 'unknown') -> str:
    """Make a value safe for use as a directory name"""
    value = "".join(c for c in str(value) if c.isalnum() or c in "._- ").strip()
    # Dot-only names resolve to the directory itself or its parent
    if not value.strip('.'):
        return default
    return value


def _record_value(record: Dataset, keyword: str) -> str:
    value = getattr(record, keyword, None)
    if value is None:
        return ''
    return str(value).strip()


class LocalResultStore:
    """
    File based result ingestor

    Study records are stored as <patient>/<study_uid>/study.json and series
    records as <patient>/<study_uid>/series/<series_uid>.json. Inserting a
    record that already exists overwrites it.
    """

    def __init__(self, storage_dir: str):
        """
        Initialize the store

        Parameters:
        -----------
        storage_dir : str
            Base directory for stored records
        """
        self.storage_dir = Path(storage_dir)
        self.storage_dir.mkdir(parents=True, exist_ok=True)

    @property
    def is_open(self) -> bool:
        return self.storage_dir.is_dir()

    def _study_dir(self, patient_id: str, study_uid: str) -> Path:
        return self.storage_dir / _sanitize(patient_id) / _sanitize(study_uid)

    def get_record_path(self, record: Dataset) -> Path:
        """
        Get the path where a record should be stored

        Parameters:
        -----------
        record : Dataset
            A study- or series-level C-FIND identifier

        Returns:
        --------
        Path: The JSON file for the record

        Raises:
        -------
        MalformedRecordError
            If the record lacks StudyInstanceUID, or is a series-level
            record without SeriesInstanceUID
        """
        study_uid = _record_value(record, 'StudyInstanceUID')
        if not study_uid:
            raise MalformedRecordError('StudyInstanceUID')

        study_dir = self._study_dir(_record_value(record, 'PatientID'), study_uid)

        level = _record_value(record, 'QueryRetrieveLevel').upper()
        series_uid = _record_value(record, 'SeriesInstanceUID')
        if level == 'SERIES' or (not level and series_uid):
            if not series_uid:
                raise MalformedRecordError('SeriesInstanceUID', details={'study': study_uid})
            return study_dir / SERIES_DIRNAME / f"{_sanitize(series_uid)}.json"

        return study_dir / STUDY_FILENAME

    def insert(self, record: Dataset) -> bool:
        """
        Store one matched record

        Returns:
        --------
        bool: True if the record was written, False if it was rejected
        """
        try:
            path = self.get_record_path(record)
        except MalformedRecordError as e:
            logger.warning(f"⚠️ Not storing record: {e}")
            return False

        json_utils.write_json(record.to_json_dict(), path)
        logger.debug(f"Stored record at {path}")
        return True

    def _load(self, path: Path) -> Optional[Dataset]:
        try:
            return Dataset.from_json(json_utils.read_json(path))
        except (OSError, ValueError, json_utils.JSONDecodeError) as e:
            logger.warning(f"Error reading stored record {path}: {e}")
            return None

    def _study_dirs(self):
        for patient_dir in sorted(self.storage_dir.iterdir()):
            if not patient_dir.is_dir():
                continue
            for study_dir in sorted(patient_dir.iterdir()):
                if study_dir.is_dir():
                    yield study_dir

    def get_all_studies(self) -> List[Dataset]:
        """
        Get all stored study records

        Returns:
        --------
        List[Dataset]: One dataset per stored study
        """
        studies = []
        for study_dir in self._study_dirs():
            study_file = study_dir / STUDY_FILENAME
            if study_file.exists():
                ds = self._load(study_file)
                if ds is not None:
                    studies.append(ds)
        return studies

    def get_series_for_study(self, study_uid: str) -> List[Dataset]:
        """
        Get all stored series records of a study

        Parameters:
        -----------
        study_uid : str
            StudyInstanceUID

        Returns:
        --------
        List[Dataset]: One dataset per stored series
        """
        series_list = []
        study_name = _sanitize(study_uid)
        for study_dir in self._study_dirs():
            if study_dir.name != study_name:
                continue
            series_dir = study_dir / SERIES_DIRNAME
            if not series_dir.is_dir():
                continue
            for series_file in sorted(series_dir.glob('*.json')):
                ds = self._load(series_file)
                if ds is not None:
                    series_list.append(ds)
        return series_list

    def counts(self) -> Dict[str, int]:
        """Count stored studies and series"""
        studies = 0
        series = 0
        for study_dir in self._study_dirs():
            if (study_dir / STUDY_FILENAME).exists():
                studies += 1
            series_dir = study_dir / SERIES_DIRNAME
            if series_dir.is_dir():
                series += len(list(series_dir.glob('*.json')))
        return {'studies': studies, 'series': series}
