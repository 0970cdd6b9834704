#!/usr/bin/env python
"""
Configuration module for the DICOM query client

Contains default settings and configuration options with environment variable support
"""

import os
from pathlib import Path

from dicom_query.utils.json_utils import get_json_backend

# Helper function to get config values from environment variables with fallbacks
def get_env_or_default(env_name, default_value):
    """Get environment variable value or return default if not set"""
    return os.environ.get(env_name, default_value)

# Base data directory for all persistent data
DEFAULT_DATA_DIR = get_env_or_default('DICOM_QUERY_DATA_DIR', 'data')

# Create path helper function
def get_data_path(subpath):
    """Get a path relative to the base data directory"""
    return os.path.join(DEFAULT_DATA_DIR, subpath)

# Connection settings
DEFAULT_CALLING_AE_TITLE = get_env_or_default('DICOM_QUERY_CALLING_AET', 'DICOMQRY')
DEFAULT_CALLED_AE_TITLE = get_env_or_default('DICOM_QUERY_CALLED_AET', 'ANY-SCP')
DEFAULT_HOST = get_env_or_default('DICOM_QUERY_HOST', 'localhost')
DEFAULT_PORT = int(get_env_or_default('DICOM_QUERY_PORT', 11112))

# Timeouts (seconds)
DEFAULT_ACSE_TIMEOUT = int(get_env_or_default('DICOM_QUERY_ACSE_TIMEOUT', 30))
DEFAULT_DIMSE_TIMEOUT = int(get_env_or_default('DICOM_QUERY_DIMSE_TIMEOUT', 30))
DEFAULT_NETWORK_TIMEOUT = int(get_env_or_default('DICOM_QUERY_NETWORK_TIMEOUT', 60))

# Local result store and logging
DEFAULT_STORE_DIR = get_env_or_default('DICOM_QUERY_STORE_DIR', get_data_path('results'))
DEFAULT_LOG_LEVEL = get_env_or_default('DICOM_QUERY_LOG_LEVEL', 'INFO')
DEFAULT_LOG_FILE = get_env_or_default('DICOM_QUERY_LOG_FILE', get_data_path('logs/dicom_query.log'))

# When true, empty string filters leave the attribute unconstrained instead of
# being sent as the "**" wildcard
DEFAULT_SKIP_EMPTY_FILTERS = get_env_or_default('DICOM_QUERY_SKIP_EMPTY_FILTERS', 'false').lower() == 'true'

# Helper functions for configuration
def get_config_dict():
    """Return a dictionary with all configuration values"""
    return {
        'data_dir': DEFAULT_DATA_DIR,
        'calling_ae_title': DEFAULT_CALLING_AE_TITLE,
        'called_ae_title': DEFAULT_CALLED_AE_TITLE,
        'host': DEFAULT_HOST,
        'port': DEFAULT_PORT,
        'acse_timeout': DEFAULT_ACSE_TIMEOUT,
        'dimse_timeout': DEFAULT_DIMSE_TIMEOUT,
        'network_timeout': DEFAULT_NETWORK_TIMEOUT,
        'store_dir': DEFAULT_STORE_DIR,
        'log_level': DEFAULT_LOG_LEVEL,
        'log_file': DEFAULT_LOG_FILE,
        'skip_empty_filters': DEFAULT_SKIP_EMPTY_FILTERS,
        'json_backend': get_json_backend(),
    }

def print_config():
    """Print current configuration values"""
    config = get_config_dict()
    print("\nCurrent Configuration:")
    print("======================")
    for key, value in config.items():
        print(f"{key}: {value}")
    print("======================\n")

def ensure_dirs_exist():
    """Create all required directories if they don't exist"""
    Path(DEFAULT_DATA_DIR).mkdir(parents=True, exist_ok=True)
    Path(DEFAULT_STORE_DIR).mkdir(parents=True, exist_ok=True)
    if DEFAULT_LOG_FILE:
        Path(os.path.dirname(DEFAULT_LOG_FILE) or '.').mkdir(parents=True, exist_ok=True)
