#!/usr/bin/env python
"""
Query dataset construction for the study/series C-FIND cascade

Owns the identifier dataset sent with each C-FIND request and moves it between
the STUDY and SERIES query levels.
"""

import copy
import logging
from enum import Enum
from typing import Mapping, Optional

from pydicom import Dataset

logger = logging.getLogger('dicom_query.dataset')

LEVEL_ATTRIBUTE = 'QueryRetrieveLevel'
LINK_ATTRIBUTE = 'StudyInstanceUID'

# Return keys requested at every level. Empty values ask the peer to return
# the attribute; the order matches what existing archives have been queried with.
PLACEHOLDER_ATTRIBUTES = (
    'PatientID',
    'PatientName',
    'PatientBirthDate',
    'StudyID',
    'StudyInstanceUID',
    'StudyDescription',
    'StudyDate',
    'SeriesNumber',
    'SeriesDescription',
    'SeriesInstanceUID',
    'StudyTime',
    'SeriesDate',
    'SeriesTime',
    'Modality',
    'ModalitiesInStudy',
    'AccessionNumber',
    'NumberOfSeriesRelatedInstances',
    'NumberOfStudyRelatedInstances',
    'NumberOfStudyRelatedSeries',
)


class QueryLevel(str, Enum):
    """Query/Retrieve levels used by the cascade"""

    STUDY = 'STUDY'
    SERIES = 'SERIES'


class QueryDatasetBuilder:
    """
    Builds and mutates the C-FIND identifier for one query run

    The builder is created per run and never shared. Per stage the state is
    applied level first, then filters, then the link value; moving from one
    series query to the next only changes the link value.
    """

    def __init__(self):
        self._dataset = Dataset()
        self._level: Optional[QueryLevel] = None

    @property
    def dataset(self) -> Dataset:
        """The live identifier dataset"""
        return self._dataset

    @property
    def level(self) -> Optional[QueryLevel]:
        """The current query level, or None before set_level()"""
        return self._level

    def reset(self):
        """Remove all attributes and insert the empty return-key placeholders"""
        self._dataset.clear()
        self._level = None

        for keyword in PLACEHOLDER_ATTRIBUTES:
            setattr(self._dataset, keyword, '')

    def set_level(self, level: QueryLevel):
        """Set the Query/Retrieve level of the identifier"""
        level = QueryLevel(level)
        setattr(self._dataset, LEVEL_ATTRIBUTE, level.value)
        self._level = level
        logger.debug(f"Query level set to {level.value}")

    def apply_filter_values(self, values: Mapping[str, str]):
        """
        Merge translated filter values into the identifier

        Parameters:
        -----------
        values : mapping
            DICOM keyword to value, as produced by translate_filters()
        """
        for keyword, value in values.items():
            setattr(self._dataset, keyword, value)

    def set_link_value(self, identifier: str):
        """
        Restrict a series-level query to one parent study

        Parameters:
        -----------
        identifier : str
            StudyInstanceUID of the parent study

        Raises:
        -------
        ValueError
            If the builder is not at the SERIES level
        """
        if self._level is not QueryLevel.SERIES:
            raise ValueError(f"{LINK_ATTRIBUTE} can only be set at the SERIES level")
        setattr(self._dataset, LINK_ATTRIBUTE, identifier)

    def snapshot(self) -> Dataset:
        """Return an independent copy of the identifier for sending"""
        return copy.deepcopy(self._dataset)
