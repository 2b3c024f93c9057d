"""Data models for RAMAS Metapop .mp result extraction."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional

import numpy as np
import pandas as pd

STATISTICS = ("mean", "sd", "min", "max")
ALL_POPULATIONS = "ALL"


class Severity(Enum):
    CRITICAL = "CRITICAL"
    WARNING = "WARNING"
    INFO = "INFO"


class ResultsStatus(Enum):
    COMPLETE = "COMPLETE"
    NO_RESULTS = "NO_RESULTS"
    FAILED = "FAILED"


@dataclass
class Finding:
    severity: Severity = Severity.INFO
    category: str = ""
    title: str = ""
    description: str = ""
    recommendation: str = ""


@dataclass
class FormatAnomaly(Finding):
    """A population row whose field count differs from the standard export."""
    line_number: int = 0
    field_count: int = 0


@dataclass(frozen=True)
class LineRange:
    """Half-open [start, stop) range of line indices within a document view."""
    start: int
    stop: int

    def __len__(self) -> int:
        return max(self.stop - self.start, 0)

    def slice(self) -> slice:
        return slice(self.start, self.stop)


@dataclass(frozen=True)
class SectionRanges:
    metadata: Optional[LineRange] = None
    migration_index: Optional[int] = None
    simulation_results: Optional[LineRange] = None
    min_max_terminal: Optional[LineRange] = None

    @property
    def has_results(self) -> bool:
        return self.simulation_results is not None


class ResultsCube:
    """Simulation results indexed by [time step, statistic, population].

    Axis 0 is positional. Axes 1 and 2 accept labels as well as integers,
    slices and lists, so ``cube[0, "mean", "ALL"]`` and ``cube[:, 0, 0]``
    address the same column.
    """

    def __init__(self, values: np.ndarray, populations: tuple[str, ...],
                 statistics: tuple[str, ...] = STATISTICS):
        if values.ndim != 3:
            raise ValueError(f"expected a 3-d array, got shape {values.shape}")
        if len(statistics) != values.shape[1]:
            raise ValueError(
                f"{len(statistics)} statistic labels for axis of length {values.shape[1]}"
            )
        if len(populations) != values.shape[2]:
            raise ValueError(
                f"{len(populations)} population labels for axis of length {values.shape[2]}"
            )
        if len(set(populations)) != len(populations):
            raise ValueError("population labels must be unique")
        values.setflags(write=False)
        self.values = values
        self.statistics = tuple(statistics)
        self.populations = tuple(populations)
        self._lookup = (
            None,
            {name: i for i, name in enumerate(self.statistics)},
            {name: i for i, name in enumerate(self.populations)},
        )

    @property
    def shape(self) -> tuple[int, int, int]:
        return self.values.shape

    def _resolve(self, axis: int, key):
        lookup = self._lookup[axis]
        if lookup is None:
            return key
        if isinstance(key, str):
            try:
                return lookup[key]
            except KeyError:
                raise KeyError(f"no label {key!r} on axis {axis}") from None
        if isinstance(key, (list, tuple)):
            return [self._resolve(axis, k) for k in key]
        return key

    def _expand(self, key: tuple) -> tuple:
        ellipses = [i for i, k in enumerate(key) if k is Ellipsis]
        if not ellipses:
            return key
        if len(ellipses) > 1:
            raise IndexError("an index can only have a single ellipsis ('...')")
        i = ellipses[0]
        fill = (slice(None),) * (self.values.ndim - len(key) + 1)
        return key[:i] + fill + key[i + 1:]

    def __getitem__(self, key):
        if not isinstance(key, tuple):
            key = (key,)
        key = self._expand(key)
        resolved = tuple(self._resolve(axis, k) for axis, k in enumerate(key))
        return self.values[resolved]

    def population(self, name: str) -> np.ndarray:
        """All four statistics for one population, shape (duration, 4)."""
        return self[:, :, name]

    def statistic(self, name: str) -> np.ndarray:
        """One statistic for every population, shape (duration, n_pops + 1)."""
        return self[:, name, :]

    def to_frame(self, statistic: str = "mean") -> pd.DataFrame:
        frame = pd.DataFrame(self.statistic(statistic), columns=list(self.populations), copy=True)
        frame.index.name = "time_step"
        return frame

    def __repr__(self) -> str:
        return (
            f"ResultsCube(duration={self.shape[0]}, "
            f"statistics={self.statistics}, populations={len(self.populations)})"
        )


@dataclass(frozen=True, eq=False)
class ParseResult:
    """Everything read from the results view of one .mp file.

    ``minmaxterm`` and ``metadata`` are copies of the frames passed in, so
    ``ema`` and ``sdma`` always describe the table this object was built
    from. Editing either frame afterwards does not recompute them.
    """
    path: Path
    results: ResultsCube
    minmaxterm: pd.DataFrame
    ema: float
    sdma: float
    timestamp: Optional[datetime]
    iters: int
    metadata: pd.DataFrame
    findings: tuple[Finding, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "minmaxterm", self.minmaxterm.copy())
        object.__setattr__(self, "metadata", self.metadata.copy())
        object.__setattr__(self, "findings", tuple(self.findings))

    @property
    def duration(self) -> int:
        return self.results.shape[0]

    @property
    def n_pops(self) -> int:
        return self.results.shape[2] - 1

    @property
    def populations(self) -> tuple[str, ...]:
        return self.results.populations[1:]


@dataclass
class Report:
    path: Path = field(default_factory=Path)
    status: ResultsStatus = ResultsStatus.NO_RESULTS
    metadata: Optional[pd.DataFrame] = None
    results: Optional[ParseResult] = None
    findings: list[Finding] = field(default_factory=list)
    error: Optional[str] = None
