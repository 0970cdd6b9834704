#!/usr/bin/env python
"""
JSON helpers for the local result store

Uses orjson when it is installed and falls back to the standard json module
"""

import logging
import os
from typing import Any, Union
from pathlib import Path

logger = logging.getLogger('dicom_query.utils.json')

try:
    import orjson
    HAS_ORJSON = True
    logger.debug("Using orjson for stored records")
except ImportError:
    import json
    HAS_ORJSON = False
    logger.debug("Using standard json library for stored records (install orjson for speed)")

if HAS_ORJSON:
    JSONDecodeError = orjson.JSONDecodeError
else:
    JSONDecodeError = json.JSONDecodeError

def dumps(obj: Any, indent: bool = True) -> bytes:
    """
    Serialize a Python object to UTF-8 encoded JSON

    Args:
        obj: Object to serialize (dict keys must be strings)
        indent: Pretty-print with two-space indentation

    Returns:
        Encoded JSON document
    """
    if HAS_ORJSON:
        option = orjson.OPT_INDENT_2 if indent else 0
        return orjson.dumps(obj, option=option)
    return json.dumps(obj, indent=2 if indent else None).encode('utf-8')

def loads(data: Union[str, bytes]) -> Any:
    """Parse a JSON document"""
    if HAS_ORJSON:
        return orjson.loads(data)
    if isinstance(data, bytes):
        data = data.decode('utf-8')
    return json.loads(data)

def read_json(file_path: Union[str, Path]) -> Any:
    """Load a JSON document from disk"""
    return loads(Path(file_path).read_bytes())

def write_json(obj: Any, file_path: Union[str, Path]) -> Path:
    """
    Write a JSON document to disk atomically

    The document is written to a sibling temporary file which then replaces
    the target, so readers never observe a half-written record.

    Args:
        obj: Object to serialize
        file_path: Destination path (parent directories are created)

    Returns:
        The destination path
    """
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    tmp_path = file_path.with_name(file_path.name + '.tmp')
    tmp_path.write_bytes(dumps(obj))
    os.replace(tmp_path, file_path)
    return file_path

def get_json_backend() -> str:
    """Get the current JSON backend being used"""
    return "orjson" if HAS_ORJSON else "json"
