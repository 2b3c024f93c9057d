"""CLI entry point for mptools."""

import argparse
import sys
from pathlib import Path

from mptools import __version__


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="mptools",
        description="Extract population metadata and simulation results from RAMAS Metapop .mp files",
    )
    parser.add_argument(
        "path",
        type=Path,
        help="Path to a .mp file, or a folder containing .mp files",
    )
    parser.add_argument(
        "-o", "--output",
        type=Path,
        default=None,
        help="Write JSON report to file",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Show detailed parsing progress",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable colored terminal output",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    args = parser.parse_args(argv)

    if not args.path.exists():
        print(f"Error: '{args.path}' doesn't exist.", file=sys.stderr)
        return 1

    from rich.console import Console

    from mptools.analyzer import Analyzer
    from mptools.models import ResultsStatus
    from mptools.report.terminal import render_report
    from mptools.report.json_report import write_json_report

    reports = Analyzer(args.path, verbose=args.verbose).run()
    if not reports:
        print(f"Error: No .mp files found in '{args.path}'", file=sys.stderr)
        return 1

    console = Console(force_terminal=not args.no_color, highlight=False)
    for report in reports:
        render_report(report, console=console)

    if args.output:
        write_json_report(reports, args.output)
        console.print(f"\n[dim]JSON report saved to: {args.output}[/dim]")

    if any(r.status == ResultsStatus.FAILED for r in reports):
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
