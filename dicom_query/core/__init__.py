"""
DICOM Query Core Package

Filter translation, query dataset building, the association client and the
study/series query cascade
"""

from .association import PynetdicomAssociationClient, QueryResult, ReleaseKind, Result
from .dataset_builder import QueryDatasetBuilder, QueryLevel
from .filters import translate_filters
from .orchestrator import DicomQuery
from .progress import CallbackProgressReporter, LoggingProgressReporter
from .store import LocalResultStore

__all__ = [
    'DicomQuery',
    'QueryDatasetBuilder',
    'QueryLevel',
    'translate_filters',
    'PynetdicomAssociationClient',
    'QueryResult',
    'ReleaseKind',
    'Result',
    'CallbackProgressReporter',
    'LoggingProgressReporter',
    'LocalResultStore',
]
