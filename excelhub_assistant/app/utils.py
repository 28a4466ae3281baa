"""
Small utilities: text decoding and JSON-safe conversion.

Rationale:
- Uploaded files arrive as raw bytes in whatever encoding the user's tool wrote.
- pandas/numpy cell values must become native Python types before they are
  returned as JSON or serialized into a prompt.
"""

import datetime
import math
from typing import Any

import numpy as np
import pandas as pd


def decode_text(raw: bytes) -> str:
    """Decode uploaded bytes as UTF-8 (BOM stripped), else Latin-1, which accepts any byte."""
    try:
        return raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        return raw.decode("latin-1")


def safe_json(obj: Any) -> Any:
    """
    Convert pandas/numpy types to Python native types.
    NaN/NaT become None; whole floats become ints; timestamps become ISO strings.
    """
    if obj is None or isinstance(obj, (bool, str)):
        return obj
    if isinstance(obj, np.generic):
        obj = obj.item()
    if isinstance(obj, float):
        if math.isnan(obj) or math.isinf(obj):
            return None
        return int(obj) if obj.is_integer() else obj
    if isinstance(obj, int):
        return obj
    if obj is pd.NaT:
        return None
    if isinstance(obj, (pd.Timestamp, datetime.datetime, datetime.date, datetime.time)):
        return obj.isoformat()
    if isinstance(obj, dict):
        return {str(k): safe_json(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [safe_json(x) for x in obj]
    return str(obj)
