import json
import os
from typing import Any, Dict, List

import pandas as pd

_TABULAR_SUFFIXES = (".parquet", ".csv")


def load_problems(file_path: str) -> List[Dict[str, Any]]:
    """
    Reads calendar problems from a file. Handles .json, .jsonl, .csv and .parquet formats.
    Returns a list of raw problem dictionaries (see `parser.parse_problem`).
    """
    if not os.path.exists(file_path):
        raise FileNotFoundError(f"File not found: {file_path}")

    def _normalize_record(record: Dict[str, Any], position: int) -> Dict[str, Any]:
        record = {k: v for k, v in record.items() if not _is_missing(v)}
        if "id" not in record:
            stem = os.path.splitext(os.path.basename(file_path))[0]
            record["id"] = f"{stem}-{position}"
        else:
            record["id"] = str(record["id"])
        return record

    def _normalize_all(records: List[Any]) -> List[Dict[str, Any]]:
        return [
            _normalize_record(r, i) for i, r in enumerate(records) if isinstance(r, dict)
        ]

    # Case 1: tabular files, one problem per row
    if file_path.endswith(_TABULAR_SUFFIXES):
        if file_path.endswith(".parquet"):
            df = pd.read_parquet(file_path)
        else:
            # Keep dates and constraint strings as text; the parser owns conversion.
            df = pd.read_csv(file_path, dtype={"constraints": str, "range_start": str, "range_end": str})
        return _normalize_all(df.to_dict(orient="records"))

    # Case 2: JSON file (array or object)
    if file_path.endswith(".json"):
        try:
            with open(file_path, "r", encoding="utf-8") as f:
                payload = json.load(f)
            if isinstance(payload, list):
                return _normalize_all(payload)
            if isinstance(payload, dict):
                return _normalize_all([payload])
            return []
        except json.JSONDecodeError:
            # Some sources use ".json" but actually store JSONL; fall back to line-delimited parsing.
            pass

    # Case 3: JSONL file
    data = []
    with open(file_path, "r", encoding="utf-8") as f:
        for line in f:
            if not line.strip():
                continue
            try:
                obj = json.loads(line)
            except json.JSONDecodeError:
                continue
            if isinstance(obj, dict):
                data.append(obj)
    return _normalize_all(data)


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (list, tuple, dict)) or getattr(value, "ndim", 0) > 0:
        return False
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False
