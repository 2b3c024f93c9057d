"""Main orchestrator that ties parsers, analysis, and report together."""

from pathlib import Path

from mptools.analysis.abundance import analyze_abundance
from mptools.errors import MpError
from mptools.models import Finding, FormatAnomaly, Report, ResultsStatus, Severity
from mptools.parsers.metadata import MetadataParser
from mptools.parsers.results import ResultsParser


class Analyzer:
    """Parse one .mp file, or every .mp file in a directory."""

    def __init__(self, target: Path, verbose: bool = False):
        self.target = Path(target)
        self.verbose = verbose

    def run(self) -> list[Report]:
        files = self._discover_files()
        if self.verbose:
            print(f"  Found {len(files)} .mp file(s) in {self.target}")
        return [self.analyze_file(path) for path in files]

    def analyze_file(self, path: Path) -> Report:
        report = Report(path=path)

        try:
            # --- Phase 1: Population metadata ---
            if self.verbose:
                print(f"  Extracting population metadata from {path}...")
            meta_parser = MetadataParser(path)
            report.metadata = meta_parser.parse()
            report.findings.extend(meta_parser.findings)

            # --- Phase 2: Simulation results ---
            if self.verbose:
                print(f"  Extracting simulation results from {path}...")
            results_parser = ResultsParser(path)
            report.results = results_parser.parse()
            report.status = results_parser.status
        except MpError as e:
            report.status = ResultsStatus.FAILED
            report.error = str(e)
            report.findings.append(Finding(
                severity=Severity.CRITICAL,
                category="structure",
                title=f"Could not parse {path.name}",
                description=str(e),
                recommendation=(
                    "Check that the simulation finished and RAMAS wrote the "
                    "complete file."
                ),
            ))
            return report

        # --- Phase 3: Analysis ---
        if report.results is None:
            report.findings.append(Finding(
                severity=Severity.INFO,
                category="results",
                title="No simulation results",
                description=f"There are no simulation results in {path}.",
                recommendation="Run the simulation in RAMAS Metapop and save the file.",
            ))
            return report

        # the metadata view already reported row anomalies
        report.findings.extend(
            f for f in report.results.findings if not isinstance(f, FormatAnomaly)
        )
        if self.verbose:
            print(f"  Running abundance analysis ({report.results.iters} iterations)...")
        report.findings.extend(analyze_abundance(report.results))

        return report

    def _discover_files(self) -> list[Path]:
        """A single file, or the .mp files directly inside a directory."""
        if self.target.is_dir():
            return sorted(
                p for p in self.target.iterdir()
                if p.is_file() and p.suffix.lower() == ".mp"
            )
        return [self.target]
