"""Expected minimum abundance and related summaries of Metapop results."""

import math

import numpy as np

from mptools.models import ALL_POPULATIONS, Finding, ParseResult, Severity

# Terminal mean total abundance below this fraction of the initial mean
DECLINE_RATIO_WARN = 0.5


def expected_minimum_abundance(minima) -> tuple[float, float]:
    """EMA and SDMA from per-iteration minimum abundances.

    EMA is the mean of the minima (McCarthy & Thompson 2001), SDMA their sample
    standard deviation. Both are NaN when undefined.
    """
    values = np.asarray(minima, dtype=float)
    ema = float(values.mean()) if values.size else math.nan
    sdma = float(values.std(ddof=1)) if values.size > 1 else math.nan
    return ema, sdma


def analyze_abundance(result: ParseResult) -> list[Finding]:
    """Findings derived from EMA and the total abundance trajectory."""
    findings: list[Finding] = []

    if result.iters and result.ema == 0:
        findings.append(Finding(
            severity=Severity.WARNING,
            category="abundance",
            title="Expected minimum abundance is zero",
            description=(
                f"Every one of {result.iters} iterations reached zero total "
                f"abundance within {result.duration} time steps."
            ),
        ))
    elif not math.isnan(result.ema):
        findings.append(Finding(
            severity=Severity.INFO,
            category="abundance",
            title="Expected minimum abundance",
            description=(
                f"EMA {result.ema:.2f} (SD {result.sdma:.2f}) "
                f"across {result.iters} iterations."
            ),
        ))

    if result.duration:
        mean_total = result.results[:, "mean", ALL_POPULATIONS]
        initial, final = float(mean_total[0]), float(mean_total[-1])
        if initial > 0 and final < initial * DECLINE_RATIO_WARN:
            findings.append(Finding(
                severity=Severity.WARNING,
                category="abundance",
                title="Mean total abundance declines",
                description=(
                    f"Mean total abundance falls from {initial:.1f} to {final:.1f} "
                    f"({final / initial:.1%} of initial) over {result.duration} time steps."
                ),
            ))

    return findings
