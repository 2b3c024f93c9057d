"""JSON report writer for parsed .mp files."""

import json
import dataclasses
import math
from datetime import datetime
from enum import Enum
from pathlib import Path

import numpy as np
import pandas as pd

from mptools.models import Report, ResultsCube


class ReportEncoder(json.JSONEncoder):
    """Encode numpy scalars and anything convert() left behind."""

    def default(self, obj):
        if isinstance(obj, np.integer):
            return int(obj)
        if isinstance(obj, np.floating):
            return None if math.isnan(obj) else float(obj)
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, Path):
            return str(obj)
        return super().default(obj)


def _clean(value):
    if isinstance(value, float) and math.isnan(value):
        return None
    return value


def report_to_dict(report: Report) -> dict:
    """Convert Report to a JSON-serializable dictionary."""

    def convert(obj):
        if isinstance(obj, pd.DataFrame):
            frame = obj.astype(object).where(obj.notna(), None)
            return frame.to_dict(orient="records")
        elif isinstance(obj, ResultsCube):
            return {
                "statistics": list(obj.statistics),
                "populations": list(obj.populations),
                "values": convert(obj.values),
            }
        elif isinstance(obj, np.ndarray):
            return [convert(v) for v in obj.tolist()] if obj.ndim else _clean(obj.item())
        elif dataclasses.is_dataclass(obj) and not isinstance(obj, type):
            result = {}
            for f in dataclasses.fields(obj):
                result[f.name] = convert(getattr(obj, f.name))
            return result
        elif isinstance(obj, (list, tuple)):
            return [convert(item) for item in obj]
        elif isinstance(obj, dict):
            return {str(k): convert(v) for k, v in obj.items()}
        elif isinstance(obj, Enum):
            return obj.value
        elif isinstance(obj, datetime):
            return obj.isoformat()
        elif isinstance(obj, Path):
            return str(obj)
        return _clean(obj)

    data = convert(report)
    if report.results is not None:
        data["results"]["duration"] = report.results.duration
        data["results"]["n_pops"] = report.results.n_pops
    return data


def write_json_report(reports: list[Report], filepath: Path):
    """Write the reports as a JSON file."""
    data = [report_to_dict(r) for r in reports]
    with open(filepath, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False, cls=ReportEncoder)
