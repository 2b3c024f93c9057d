"""Parser for the population block of a RAMAS Metapop .mp file."""

import csv
from pathlib import Path

import numpy as np
import pandas as pd

from mptools.errors import ParseError
from mptools.models import Finding, FormatAnomaly, LineRange, Severity
from mptools.parsers.document import METADATA_VIEW_HEADER_LINES, RawDocument, read_document
from mptools.parsers.locator import POPULATION_ROW_FIELDS, SectionLocator

POPULATION_COLUMNS = [
    "pop_name", "x_metapop", "y_metapop", "init_n", "dd_type", "rmax", "k", "k_sd",
    "allee", "kch", "dd_disp_source_pop_n", "cat1_local_multi", "cat1_local_prob",
    "include_in_total", "stage_matrix", "rel_fec", "rel_surv", "local_thr",
    "cat2_local_multi", "cat2_local_prob", "sd_matrix", "dd_disp_target_pop_k",
    "t_since_cat1", "t_since_cat2", "rel_disp", "rel_var_fec", "rel_var_surv",
]

# kch may name a .kch file; the matrices are referenced by name
TEXT_COLUMNS = {"pop_name", "dd_type", "kch", "include_in_total", "stage_matrix", "sd_matrix"}


def _to_number(token: str, document: RawDocument, index: int, column: str) -> float:
    token = token.strip()
    if not token:
        return np.nan
    try:
        return float(token)
    except ValueError:
        raise ParseError(
            f"Non-numeric value {token!r} for {column} on line "
            f"{document.line_number(index)} of {document.filepath}",
            document.filepath,
            line_number=document.line_number(index),
            token=token,
        ) from None


def decode_populations(
    document: RawDocument, line_range: LineRange, findings: list[Finding]
) -> pd.DataFrame:
    """Decode the comma-separated population rows in ``line_range``.

    Rows keep document order. Only the 27 standard columns are returned; a row
    with any other raw field count is recorded in ``findings`` and truncated
    or padded.
    """
    n_columns = len(POPULATION_COLUMNS)
    records = []
    # field count -> file line numbers of rows with that count
    anomalies: dict[int, list[int]] = {}

    for index in range(line_range.start, line_range.stop):
        line = document.lines[index]
        if not line.strip():
            continue
        fields = next(csv.reader([line]))
        if len(fields) != POPULATION_ROW_FIELDS:
            anomalies.setdefault(len(fields), []).append(document.line_number(index))
        fields = (fields + [""] * n_columns)[:n_columns]

        record = {}
        for column, token in zip(POPULATION_COLUMNS, fields):
            if column in TEXT_COLUMNS:
                record[column] = token.strip()
            else:
                record[column] = _to_number(token, document, index, column)
        records.append(record)

    for field_count, line_numbers in anomalies.items():
        findings.append(FormatAnomaly(
            severity=Severity.WARNING,
            category="format",
            title="Non-standard population row",
            description=(
                f"{len(line_numbers)} population row(s) in {document.filepath} have "
                f"{field_count} fields (first on line {line_numbers[0]}), expected "
                f"{POPULATION_ROW_FIELDS}. Only the standard set of {n_columns} "
                f"fields is returned."
            ),
            recommendation=(
                "It looks like a custom RAMAS dll was used to export this file. "
                "Check the returned columns before relying on them."
            ),
            line_number=line_numbers[0],
            field_count=field_count,
        ))

    frame = pd.DataFrame.from_records(records, columns=POPULATION_COLUMNS)
    numeric = [c for c in POPULATION_COLUMNS if c not in TEXT_COLUMNS]
    frame[numeric] = frame[numeric].astype(float)
    return frame


class MetadataParser:
    """Parser for population metadata (coordinates, K, Rmax, matrices, ...)."""

    def __init__(self, filepath: Path | str):
        self.filepath = Path(filepath)
        self.findings: list[Finding] = []

    def parse(self) -> pd.DataFrame:
        self.findings = []
        document = read_document(self.filepath, METADATA_VIEW_HEADER_LINES)
        ranges = SectionLocator(document).locate_metadata_view()
        return decode_populations(document, ranges.metadata, self.findings)
