#!/usr/bin/env python
"""
Command-line interface for querying a remote DICOM archive

Runs a study-level C-FIND followed by a series-level C-FIND for every matched
study and stores the results in the local result store.
"""

import argparse
import logging

from dicom_query.config import (
    DEFAULT_CALLING_AE_TITLE,
    DEFAULT_CALLED_AE_TITLE,
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEFAULT_ACSE_TIMEOUT,
    DEFAULT_DIMSE_TIMEOUT,
    DEFAULT_NETWORK_TIMEOUT,
    DEFAULT_STORE_DIR,
    DEFAULT_LOG_LEVEL,
    DEFAULT_LOG_FILE,
    DEFAULT_SKIP_EMPTY_FILTERS,
    print_config,
    ensure_dirs_exist
)
from dicom_query.utils.logging_config import configure_logging
from dicom_query.core.association import PynetdicomAssociationClient
from dicom_query.core.orchestrator import DicomQuery
from dicom_query.core.progress import LoggingProgressReporter
from dicom_query.core.store import LocalResultStore

logger = logging.getLogger('dicom_query.cli')

def build_parser():
    """Create the argument parser for the query CLI"""
    parser = argparse.ArgumentParser(description='Query a DICOM archive for studies and their series')

    # Connection
    parser.add_argument('--calling-aet', type=str, default=DEFAULT_CALLING_AE_TITLE,
                        help=f'Our AE title (default/env: {DEFAULT_CALLING_AE_TITLE})')
    parser.add_argument('--called-aet', type=str, default=DEFAULT_CALLED_AE_TITLE,
                        help=f'AE title of the archive (default/env: {DEFAULT_CALLED_AE_TITLE})')
    parser.add_argument('--host', type=str, default=DEFAULT_HOST,
                        help=f'Host of the archive (default/env: {DEFAULT_HOST})')
    parser.add_argument('--port', type=int, default=DEFAULT_PORT,
                        help=f'Port of the archive (default/env: {DEFAULT_PORT})')
    parser.add_argument('--acse-timeout', type=int, default=DEFAULT_ACSE_TIMEOUT,
                        help=f'Association timeout in seconds (default/env: {DEFAULT_ACSE_TIMEOUT})')
    parser.add_argument('--dimse-timeout', type=int, default=DEFAULT_DIMSE_TIMEOUT,
                        help=f'C-FIND response timeout in seconds (default/env: {DEFAULT_DIMSE_TIMEOUT})')
    parser.add_argument('--network-timeout', type=int, default=DEFAULT_NETWORK_TIMEOUT,
                        help=f'Network inactivity timeout in seconds (default/env: {DEFAULT_NETWORK_TIMEOUT})')

    # Filters
    parser.add_argument('--name', type=str,
                        help='Patient name contains this text')
    parser.add_argument('--study', type=str,
                        help='Study description contains this text')
    parser.add_argument('--series', type=str,
                        help='Series description contains this text')
    parser.add_argument('--patient-id', type=str,
                        help='Patient ID contains this text')
    parser.add_argument('--modality', action='append', default=None,
                        help='Modality in study (repeat to match any of several)')
    parser.add_argument('--skip-empty-filters', dest='skip_empty_filters', action='store_true',
                        help='Leave empty text filters unconstrained instead of matching "**"')
    parser.add_argument('--no-skip-empty-filters', dest='skip_empty_filters', action='store_false',
                        help='Send empty text filters as "**"')
    parser.set_defaults(skip_empty_filters=DEFAULT_SKIP_EMPTY_FILTERS)

    # Storage and logging
    parser.add_argument('--store-dir', type=str, default=DEFAULT_STORE_DIR,
                        help=f'Directory to store matched records (default/env: {DEFAULT_STORE_DIR})')
    parser.add_argument('--log-level', type=str, default=DEFAULT_LOG_LEVEL,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        help=f'Logging level (default/env: {DEFAULT_LOG_LEVEL})')
    parser.add_argument('--log-file', type=str, default=DEFAULT_LOG_FILE,
                        help='Also log to this file')

    parser.add_argument('--summary', action='store_true',
                        help='Print the stored studies and series after the query')
    parser.add_argument('--show-config', action='store_true',
                        help='Print the current configuration and exit')
    return parser

def filters_from_args(args):
    """Build the filter set from parsed arguments, leaving out unset filters"""
    filters = {}
    if args.name is not None:
        filters['Name'] = args.name
    if args.study is not None:
        filters['Study'] = args.study
    if args.series is not None:
        filters['Series'] = args.series
    if args.patient_id is not None:
        filters['ID'] = args.patient_id
    if args.modality:
        filters['Modalities'] = list(args.modality)
    return filters

def print_summary(store):
    """Print the studies and series held by the result store"""
    counts = store.counts()
    print(f"\nStored {counts['studies']} studies and {counts['series']} series\n")
    for study in store.get_all_studies():
        study_uid = getattr(study, 'StudyInstanceUID', '')
        print(f"{getattr(study, 'PatientName', '')} ({getattr(study, 'PatientID', '')}) "
              f"{getattr(study, 'StudyDate', '')} {getattr(study, 'StudyDescription', '') or 'No Description'}")
        print(f"  UID: {study_uid}")
        for series in store.get_series_for_study(study_uid):
            print(f"    #{getattr(series, 'SeriesNumber', '')} {getattr(series, 'Modality', '')} "
                  f"{getattr(series, 'SeriesDescription', '')}")

def main(argv=None):
    """Main entry point for the query CLI"""
    args = build_parser().parse_args(argv)

    if args.show_config:
        print_config()
        return 0

    ensure_dirs_exist()

    log_level = getattr(logging, args.log_level)
    configure_logging(level=log_level, log_file=args.log_file)

    filters = filters_from_args(args)
    logger.info(f"Querying {args.called_aet}@{args.host}:{args.port} as {args.calling_aet}")
    logger.info(f"Filters: {filters or 'none'}")
    logger.info(f"Using store directory: {args.store_dir}")

    store = LocalResultStore(args.store_dir)

    def client_factory():
        return PynetdicomAssociationClient(
            acse_timeout=args.acse_timeout,
            dimse_timeout=args.dimse_timeout,
            network_timeout=args.network_timeout
        )

    query = DicomQuery(
        calling_ae_title=args.calling_aet,
        called_ae_title=args.called_aet,
        host=args.host,
        port=args.port,
        filters=filters,
        client_factory=client_factory,
        skip_empty_filters=args.skip_empty_filters
    )

    try:
        query.query(store, LoggingProgressReporter())
    except KeyboardInterrupt:
        logger.info("Query interrupted by user")
        return 1
    except Exception as e:
        logger.error(f"Unexpected error during query: {e}")
        return 1

    if args.summary:
        print_summary(store)

    return 0

if __name__ == "__main__":
    exit(main())
