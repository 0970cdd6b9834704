"""
DICOM Hierarchical Query Client

A Python application that queries a remote DICOM archive (C-FIND SCU) at the
study level, cascades into a series-level query for every matched study, and
stores every matched record locally while reporting progress.
"""

__version__ = '1.0.0'
