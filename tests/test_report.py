"""Tests for mptools.report — JSON and terminal output."""

import json

from rich.console import Console

from mptools.analyzer import Analyzer
from mptools.report.json_report import report_to_dict, write_json_report
from mptools.report.terminal import render_report


class TestJsonReport:
    def test_report_to_dict(self, mp_file):
        report = Analyzer(mp_file).run()[0]
        data = report_to_dict(report)
        assert data["status"] == "COMPLETE"
        assert data["path"] == str(mp_file)
        results = data["results"]
        assert results["duration"] == 5
        assert results["n_pops"] == 3
        assert results["results"]["populations"] == ["ALL", "1", "2", "3"]
        assert results["results"]["values"][0][0][0] == 1000.0
        assert results["timestamp"] == "2014-08-10T13:33:04"
        assert results["minmaxterm"][0] == {"min": 10.0, "max": 100.0, "terminal": 50.0}
        assert data["metadata"][0]["pop_name"] == "1"
        # empty numeric fields become null, not NaN
        assert data["metadata"][0]["cat2_local_prob"] is None

    def test_write_json_report(self, mp_file, make_mp, tmp_path):
        make_mp("other.mp", results=False)
        reports = Analyzer(tmp_path).run()
        out = tmp_path / "report.json"
        write_json_report(reports, out)
        data = json.loads(out.read_text(encoding="utf-8"))
        assert [d["status"] for d in data] == ["COMPLETE", "NO_RESULTS"]
        assert data[1]["results"] is None

    def test_single_iteration_sdma_is_null(self, make_mp, tmp_path):
        report = Analyzer(make_mp(iterations=1)).run()[0]
        out = tmp_path / "report.json"
        write_json_report([report], out)
        data = json.loads(out.read_text(encoding="utf-8"))
        assert data[0]["results"]["sdma"] is None


class TestTerminalReport:
    def _render(self, report) -> str:
        console = Console(record=True, width=120, force_terminal=False)
        render_report(report, console=console)
        return console.export_text()

    def test_complete_report(self, mp_file):
        text = self._render(Analyzer(mp_file).run()[0])
        assert "Simulation results found" in text
        assert "Iterations: 3" in text
        assert "EMA" in text
        assert "ALL" in text

    def test_failed_report(self, make_mp):
        text = self._render(Analyzer(make_mp(trailer=False)).run()[0])
        assert "Parse failed" in text
        assert "CRITICAL" in text
