#!/usr/bin/env python
"""
Setup script for the DICOM query client package
"""

from setuptools import setup, find_packages
import os
import re

# Get the version from dicom_query/__init__.py
with open(os.path.join('dicom_query', '__init__.py'), 'r') as f:
    version_file = f.read()
    version_match = re.search(r"^__version__ = ['\"]([^'\"]*)['\"]", version_file, re.M)
    if version_match:
        version = version_match.group(1)
    else:
        raise RuntimeError("Unable to find version string in dicom_query/__init__.py")

# Read the README file for the long description
with open('README.md', 'r') as f:
    long_description = f.read()

setup(
    name='dicom_query',
    version=version,
    description='Hierarchical DICOM C-FIND client that cascades study queries into series queries',
    long_description=long_description,
    long_description_content_type='text/markdown',
    author='Hospital IT Team',
    author_email='it@hospital.example',
    packages=find_packages(exclude=['tests', 'tests.*']),
    scripts=[
        'scripts/dicom_config.py',
    ],
    entry_points={
        'console_scripts': [
            'dicom-query=dicom_query.cli.query:main',
            'dicom-query-config=dicom_query.config:print_config',
        ],
    },
    install_requires=[
        'pynetdicom>=2.1.0',
        'pydicom>=2.4.0',
    ],
    extras_require={
        'fast-json': ['orjson>=3.9.0'],
        'test': ['pytest>=7.0.0'],
    },
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: Healthcare Industry',
        'Intended Audience :: Information Technology',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.8',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'License :: OSI Approved :: MIT License',
        'Operating System :: OS Independent',
        'Environment :: Console',
        'Topic :: Communications',
        'Topic :: Scientific/Engineering :: Medical Science Apps.',
    ],
    python_requires='>=3.8',
    keywords='dicom, c-find, query retrieve, pacs, medical imaging',
)
