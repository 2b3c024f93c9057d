"""Locate the sections of a RAMAS Metapop .mp file.

The format has no schema. Sections are bounded by fixed offsets and marker
lines, so the locator only returns index ranges; decoding happens separately
in the metadata and results parsers.
"""

import csv

from mptools.errors import StructuralError
from mptools.models import LineRange, SectionRanges
from mptools.parsers.document import RawDocument

END_OF_FILE_MARKER = "-End of file-"
MIGRATION_MARKER = "Migration"
SIMULATION_RESULTS_MARKER = "Simulation results"
OCCUPANCY_MARKER = "Occupancy"
MIN_MAX_TERMINAL_MARKER = "Min.  Max.  Ter."
TIME_TO_CROSS_MARKER = "Time to cross"

# Population rows start at the 39th line after the 6-line preamble
METADATA_VIEW_POPULATION_OFFSET = 38

# Raw comma-separated fields in a standard population row (27 + trailing field)
POPULATION_ROW_FIELDS = 28


def count_fields(line: str) -> int:
    """Number of comma-separated fields in a line, honouring quotes."""
    if not line.strip():
        return 0
    return len(next(csv.reader([line])))


class SectionLocator:
    """Find section boundaries in a .mp document view."""

    def __init__(self, document: RawDocument):
        self.document = document
        self.lines = document.lines

    def _fail(self, expectation: str) -> StructuralError:
        return StructuralError(
            f"Expected {expectation} in {self.document.filepath}",
            self.document.filepath,
        )

    def check_trailer(self):
        if not self.lines or END_OF_FILE_MARKER not in self.lines[-1]:
            raise StructuralError(
                f'Expected final line of {self.document.filepath} '
                f'to contain "{END_OF_FILE_MARKER}"',
                self.document.filepath,
            )

    def has_simulation_results(self) -> bool:
        return any(SIMULATION_RESULTS_MARKER in line for line in self.lines)

    def _find(self, predicate, start: int = 0) -> int | None:
        for i in range(start, len(self.lines)):
            if predicate(self.lines[i]):
                return i
        return None

    def _require(self, predicate, expectation: str, start: int = 0) -> int:
        index = self._find(predicate, start)
        if index is None:
            raise self._fail(expectation)
        return index

    def locate_metadata_view(self) -> SectionRanges:
        """Ranges for a document read with the 6-line preamble removed."""
        self.check_trailer()
        start = METADATA_VIEW_POPULATION_OFFSET
        migration = self._require(
            lambda line: line == MIGRATION_MARKER,
            f'a line "{MIGRATION_MARKER}" after the population block',
            start,
        )
        return SectionRanges(metadata=LineRange(start, migration), migration_index=migration)

    def locate_results_view(self) -> SectionRanges:
        """Ranges for a document read with the 1-line preamble removed.

        When the file holds no simulation results every range is None; the
        population block is not searched for.
        """
        self.check_trailer()
        if not self.has_simulation_results():
            return SectionRanges()

        start = self._require(
            lambda line: count_fields(line) == POPULATION_ROW_FIELDS,
            f"a population row with {POPULATION_ROW_FIELDS} comma-separated fields",
        )
        migration = self._require(
            lambda line: line.startswith(MIGRATION_MARKER),
            f'a line starting with "{MIGRATION_MARKER}" after the population block',
            start,
        )
        metadata = LineRange(start, migration)

        results_start = self._require(
            lambda line: line.startswith(SIMULATION_RESULTS_MARKER),
            f'a line starting with "{SIMULATION_RESULTS_MARKER}"',
        )
        occupancy = self._require(
            lambda line: line.startswith(OCCUPANCY_MARKER),
            f'a line starting with "{OCCUPANCY_MARKER}" after the simulation results',
            results_start,
        )
        mmt_start = self._require(
            lambda line: line.strip() == MIN_MAX_TERMINAL_MARKER,
            f'a line "{MIN_MAX_TERMINAL_MARKER}"',
            results_start,
        )
        mmt_stop = self._require(
            lambda line: TIME_TO_CROSS_MARKER in line,
            f'a line containing "{TIME_TO_CROSS_MARKER}" after "{MIN_MAX_TERMINAL_MARKER}"',
            mmt_start,
        )

        return SectionRanges(
            metadata=metadata,
            migration_index=migration,
            simulation_results=LineRange(results_start, occupancy),
            min_max_terminal=LineRange(mmt_start, mmt_stop),
        )
