"""Extract population metadata and simulation results from RAMAS Metapop .mp files."""

import warnings
from pathlib import Path

from mptools.errors import (
    FormatAnomalyWarning, MpError, ParseError, StructuralError, UsageError,
)
from mptools.models import (
    Finding, FormatAnomaly, ParseResult, Report, ResultsCube, ResultsStatus, Severity,
)

__version__ = "0.1.0"


def meta(mp: Path | str):
    """Population metadata of a .mp file, one row per population.

    Non-standard population rows are reported as FormatAnomalyWarning.
    """
    from mptools.parsers.metadata import MetadataParser

    parser = MetadataParser(mp)
    frame = parser.parse()
    for finding in parser.findings:
        warnings.warn(finding.description, FormatAnomalyWarning, stacklevel=2)
    return frame


def results(mp: Path | str):
    """Simulation results of a .mp file, or None if it has none."""
    from mptools.parsers.results import ResultsParser

    return ResultsParser(mp).parse()
