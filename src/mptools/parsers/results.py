"""Parser for the simulation results of a RAMAS Metapop .mp file.

The results section looks like::

    Simulation results 10/08/2014 13:33:04
    1000 iterations
    <column header>
    Pop. ALL
    <mean> <sd> <min> <max>        one row per time step
    ...
    Pop. 1
    ...
    Occupancy
    ...
    Min.  Max.  Ter.
    <min> <max> <terminal>         one row per iteration
    ...
    Time to cross ...
"""

import re
from datetime import datetime
from pathlib import Path

import numpy as np
import pandas as pd

from mptools.analysis.abundance import expected_minimum_abundance
from mptools.errors import MpError, ParseError, StructuralError
from mptools.models import (
    ALL_POPULATIONS, STATISTICS, Finding, LineRange, ParseResult, ResultsCube,
    ResultsStatus, Severity,
)
from mptools.parsers.document import RESULTS_VIEW_HEADER_LINES, RawDocument, read_document
from mptools.parsers.locator import SectionLocator
from mptools.parsers.metadata import decode_populations

# Title, iteration count and column header precede the first population block
RESULTS_PREAMBLE_LINES = 3
POPULATION_SEPARATOR = "Pop"

# Order in which values are written: every time step of a population's block
# (each row holding the four statistics) before the next population begins.
SOURCE_LAYOUT = ("population", "time_step", "statistic")
CUBE_LAYOUT = ("time_step", "statistic", "population")

MIN_MAX_TERMINAL_COLUMNS = ["min", "max", "terminal"]

RE_TITLE = re.compile(r'^Simulation results\s*(.*?)\s*$')
RE_LEADING_INT = re.compile(r'^\s*(\d+)')

# Day-first date followed by the locale's time representation
TIMESTAMP_FORMATS = (
    "%d/%m/%Y %H:%M:%S",
    "%d/%m/%Y %I:%M:%S %p",
    "%d/%m/%Y %H:%M",
)


def _numeric_row(
    document: RawDocument, index: int, n_values: int, section: str
) -> list[float]:
    tokens = document.lines[index].split()
    line_number = document.line_number(index)
    if len(tokens) != n_values:
        raise StructuralError(
            f"Expected {n_values} values per {section} row, found {len(tokens)} "
            f"on line {line_number} of {document.filepath}",
            document.filepath,
        )
    values = []
    for token in tokens:
        try:
            values.append(float(token))
        except ValueError:
            raise ParseError(
                f"Non-numeric value {token!r} in {section} on line "
                f"{line_number} of {document.filepath}",
                document.filepath,
                line_number=line_number,
                token=token,
            ) from None
    return values


def _reorder_axes(flat: np.ndarray, n_blocks: int, duration: int) -> np.ndarray:
    """Reshape rows written in SOURCE_LAYOUT into a CUBE_LAYOUT array."""
    shape = {
        "population": n_blocks,
        "time_step": duration,
        "statistic": len(STATISTICS),
    }
    source = flat.reshape([shape[axis] for axis in SOURCE_LAYOUT])
    order = [SOURCE_LAYOUT.index(axis) for axis in CUBE_LAYOUT]
    return np.ascontiguousarray(source.transpose(order))


def decode_results_cube(
    document: RawDocument, line_range: LineRange, populations: tuple[str, ...]
) -> ResultsCube:
    """Decode the per-population blocks of mean/sd/min/max rows.

    ``populations`` are the metadata names in document order; the first block
    is the metapopulation total and is labelled ``ALL``.
    """
    filepath = document.filepath
    if len(line_range) < RESULTS_PREAMBLE_LINES:
        raise StructuralError(
            f"Simulation results section of {filepath} is shorter than its header",
            filepath,
        )

    # separator positions among the non-blank body lines
    separators: list[int] = []
    rows: list[list[float]] = []
    position = 0
    for index in range(line_range.start + RESULTS_PREAMBLE_LINES, line_range.stop):
        line = document.lines[index]
        if not line.strip():
            continue
        if POPULATION_SEPARATOR in line:
            separators.append(position)
        else:
            if not separators:
                raise StructuralError(
                    f'Expected a "{POPULATION_SEPARATOR}" line before the first results '
                    f"row (line {document.line_number(index)} of {filepath})",
                    filepath,
                )
            rows.append(_numeric_row(document, index, len(STATISTICS), "simulation results"))
        position += 1

    if not separators:
        raise StructuralError(
            f'Expected "{POPULATION_SEPARATOR}" lines in the simulation results of {filepath}',
            filepath,
        )

    boundaries = separators + [position]
    block_sizes = {boundaries[i + 1] - boundaries[i] - 1 for i in range(len(separators))}
    duration = boundaries[1] - boundaries[0] - 1
    if block_sizes != {duration} or duration == 0:
        raise StructuralError(
            f"Population blocks in {filepath} have unequal or zero lengths "
            f"{sorted(block_sizes)}",
            filepath,
        )

    n_blocks = len(separators)
    labels = (ALL_POPULATIONS, *populations)
    if len(labels) != n_blocks:
        raise StructuralError(
            f"{filepath} has {n_blocks} population blocks in its simulation results "
            f"but {len(populations)} populations (+ {ALL_POPULATIONS}) in its metadata",
            filepath,
        )
    if len(set(labels)) != len(labels):
        raise StructuralError(f"Population names in {filepath} are not unique", filepath)

    values = _reorder_axes(np.array(rows, dtype=float), n_blocks, duration)
    return ResultsCube(values, populations=labels)


def decode_min_max_terminal(document: RawDocument, line_range: LineRange) -> pd.DataFrame:
    """Per-iteration minimum, maximum and terminal total abundance."""
    rows = [
        _numeric_row(document, index, len(MIN_MAX_TERMINAL_COLUMNS), "min/max/terminal")
        for index in range(line_range.start + 1, line_range.stop)
        if document.lines[index].strip()
    ]
    # (iterations, 3) even for a single iteration or an empty block
    values = np.array(rows, dtype=float).reshape(-1, len(MIN_MAX_TERMINAL_COLUMNS))
    frame = pd.DataFrame(values, columns=MIN_MAX_TERMINAL_COLUMNS)
    frame.index = pd.RangeIndex(1, len(frame) + 1, name="iteration")
    return frame


def parse_timestamp(title: str, formats=TIMESTAMP_FORMATS) -> datetime | None:
    m = RE_TITLE.match(title.strip())
    if not m:
        return None
    text = " ".join(m.group(1).split())
    for fmt in formats:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def parse_iteration_count(document: RawDocument, index: int) -> int:
    line = document.lines[index]
    m = RE_LEADING_INT.match(line)
    if not m:
        raise ParseError(
            f"Expected an iteration count on line {document.line_number(index)} "
            f"of {document.filepath}, found {line.strip()!r}",
            document.filepath,
            line_number=document.line_number(index),
            token=line.strip(),
        )
    return int(m.group(1))


class ResultsParser:
    """Parser for simulation results, iteration summaries and EMA."""

    def __init__(self, filepath: Path | str, timestamp_formats=TIMESTAMP_FORMATS):
        self.filepath = Path(filepath)
        self.timestamp_formats = tuple(timestamp_formats)
        self.findings: list[Finding] = []
        self.status = ResultsStatus.NO_RESULTS

    def parse(self) -> ParseResult | None:
        """Parse the file; None when it holds no simulation results.

        ``status`` is FAILED after any MpError, so a failed parse is never
        mistaken for a file without results.
        """
        self.findings = []
        self.status = ResultsStatus.NO_RESULTS
        try:
            return self._parse()
        except MpError:
            self.status = ResultsStatus.FAILED
            raise

    def _parse(self) -> ParseResult | None:
        document = read_document(self.filepath, RESULTS_VIEW_HEADER_LINES)
        ranges = SectionLocator(document).locate_results_view()
        if not ranges.has_results:
            return None

        metadata = decode_populations(document, ranges.metadata, self.findings)
        populations = tuple(metadata["pop_name"])
        cube = decode_results_cube(document, ranges.simulation_results, populations)

        minmaxterm = decode_min_max_terminal(document, ranges.min_max_terminal)
        ema, sdma = expected_minimum_abundance(minmaxterm["min"])

        title_index = ranges.simulation_results.start
        title = document.lines[title_index]
        timestamp = parse_timestamp(title, self.timestamp_formats)
        if timestamp is None:
            self.findings.append(Finding(
                severity=Severity.WARNING,
                category="format",
                title="Unreadable simulation timestamp",
                description=(
                    f"Could not read a date from {title.strip()!r} on line "
                    f"{document.line_number(title_index)}."
                ),
                recommendation="Pass timestamp_formats matching the locale RAMAS ran under.",
            ))

        iters = parse_iteration_count(document, title_index + 1)
        if iters != len(minmaxterm):
            self.findings.append(Finding(
                severity=Severity.WARNING,
                category="format",
                title="Iteration count mismatch",
                description=(
                    f"Header reports {iters} iterations but {len(minmaxterm)} "
                    f"min/max/terminal rows were found."
                ),
            ))

        self.status = ResultsStatus.COMPLETE
        return ParseResult(
            path=self.filepath,
            results=cube,
            minmaxterm=minmaxterm,
            ema=ema,
            sdma=sdma,
            timestamp=timestamp,
            iters=iters,
            metadata=metadata,
            findings=tuple(self.findings),
        )
