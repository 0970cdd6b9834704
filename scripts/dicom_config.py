#!/usr/bin/env python
"""
Script to display the current DICOM query client configuration
"""

from dicom_query.config import print_config

if __name__ == "__main__":
    print_config()
