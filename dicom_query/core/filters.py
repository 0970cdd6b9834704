#!/usr/bin/env python
"""
Filter translation for study-level C-FIND queries

Maps the user-facing filter names (Name, Study, Series, ID, Modalities) onto
DICOM attribute keywords, applying DICOM wildcard matching for free-text
filters and multi-value OR matching for modalities.
"""

import logging
from typing import Any, Dict, Iterable, Mapping

logger = logging.getLogger('dicom_query.filters')

# Free-text filters, matched as "*value*"
FILTER_ATTRIBUTES = {
    'Name': 'PatientName',
    'Study': 'StudyDescription',
    'Series': 'SeriesDescription',
    'ID': 'PatientID',
}

MODALITIES_FILTER = 'Modalities'
MODALITIES_ATTRIBUTE = 'ModalitiesInStudy'

# DICOM value multiplicity delimiter; the peer ORs the values
MODALITY_SEPARATOR = '\\'

def wildcard(value: str) -> str:
    """Wrap a filter value in DICOM '*' wildcards for substring matching"""
    return f"*{value}*"

def join_modalities(modalities: Iterable[str]) -> str:
    """
    Join modality codes into a single multi-valued attribute string

    Parameters:
    -----------
    modalities : iterable of str
        Modality codes such as 'CT' or 'MR'. A bare string counts as a
        single modality.

    Returns:
    --------
    str: The codes separated by a backslash, or '' for no codes
    """
    if isinstance(modalities, str):
        modalities = [modalities]
    return MODALITY_SEPARATOR.join(str(m) for m in modalities)

def translate_filters(filters: Mapping[str, Any], skip_empty: bool = False) -> Dict[str, str]:
    """
    Translate a filter set into DICOM attribute values

    Parameters:
    -----------
    filters : mapping
        Filter name to value. Unrecognized names are ignored.
    skip_empty : bool
        If True, empty free-text filters are dropped so the attribute stays
        an unconstrained placeholder. If False (default), they become the
        '**' wildcard.

    Returns:
    --------
    Dict[str, str]: DICOM keyword to attribute value
    """
    values = {}
    for key, value in (filters or {}).items():
        if key in FILTER_ATTRIBUTES:
            text = '' if value is None else str(value)
            if skip_empty and not text:
                logger.debug(f"Skipping empty filter '{key}'")
                continue
            values[FILTER_ATTRIBUTES[key]] = wildcard(text)
        elif key == MODALITIES_FILTER:
            modality_search = join_modalities(value or [])
            logger.debug(f"modalitySearch {modality_search}")
            values[MODALITIES_ATTRIBUTE] = modality_search
        else:
            logger.debug(f"Ignoring unrecognized filter '{key}'")
    return values
