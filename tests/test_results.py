"""Tests for mptools.parsers.results — cube reshaping, iteration summary, EMA."""

import dataclasses
import math
from datetime import datetime

import numpy as np
import pandas as pd
import pytest

import mptools
from mptools.errors import ParseError, StructuralError
from mptools.models import ResultsCube, ResultsStatus, Severity
from mptools.parsers.results import (
    CUBE_LAYOUT,
    SOURCE_LAYOUT,
    ResultsParser,
    parse_timestamp,
)

from mpbuilder import max_value, mean_value, min_value, sd_value


# ── cube layout ───────────────────────────────────────────────────────

class TestCube:
    def test_layout_constants(self):
        assert SOURCE_LAYOUT == ("population", "time_step", "statistic")
        assert CUBE_LAYOUT == ("time_step", "statistic", "population")

    def test_shape_and_labels(self, mp_file):
        res = ResultsParser(mp_file).parse()
        assert res.results.shape == (5, 4, 4)
        assert res.results.statistics == ("mean", "sd", "min", "max")
        assert res.results.populations == ("ALL", "1", "2", "3")
        assert res.duration == 5
        assert res.n_pops == 3

    def test_population_major_interleaving(self, mp_file):
        cube = ResultsParser(mp_file).parse().results
        for block, label in enumerate(cube.populations):
            for t in range(5):
                assert cube[t, "mean", label] == mean_value(block, t)
                assert cube[t, "sd", label] == sd_value(block, t)
                assert cube[t, "min", label] == min_value(block, t)
                assert cube[t, "max", label] == max_value(block, t)

    def test_label_and_positional_indexing_agree(self, mp_file):
        cube = ResultsParser(mp_file).parse().results
        assert cube[2, "max", "2"] == cube[2, 3, 2]
        np.testing.assert_array_equal(cube[:, "mean", :], cube.values[:, 0, :])
        np.testing.assert_array_equal(cube[:, ["min", "max"], "ALL"], cube.values[:, 2:, 0])

    def test_population_and_statistic_slices(self, mp_file):
        cube = ResultsParser(mp_file).parse().results
        assert cube.population("3").shape == (5, 4)
        assert cube.statistic("sd").shape == (5, 4)
        frame = cube.to_frame("mean")
        assert list(frame.columns) == ["ALL", "1", "2", "3"]
        assert frame.loc[4, "1"] == mean_value(1, 4)

    def test_unknown_label(self, mp_file):
        cube = ResultsParser(mp_file).parse().results
        with pytest.raises(KeyError, match="median"):
            cube[0, "median", "ALL"]

    def test_cube_is_read_only(self, mp_file):
        cube = ResultsParser(mp_file).parse().results
        with pytest.raises(ValueError):
            cube.values[0, 0, 0] = -1

    def test_ellipsis_resolves_labels(self, mp_file):
        cube = ResultsParser(mp_file).parse().results
        np.testing.assert_array_equal(cube[..., "ALL"], cube.values[..., 0])
        np.testing.assert_array_equal(cube[..., "max", "2"], cube.values[:, 3, 2])
        np.testing.assert_array_equal(cube[:, "sd", ...], cube.values[:, 1, :])
        assert cube[0, ...].shape == (4, 4)
        assert cube[...].shape == cube.shape

    def test_double_ellipsis_rejected(self, mp_file):
        cube = ResultsParser(mp_file).parse().results
        with pytest.raises(IndexError, match="single ellipsis"):
            cube[..., 0, ...]

    def test_duplicate_labels_rejected(self):
        with pytest.raises(ValueError, match="unique"):
            ResultsCube(np.zeros((1, 4, 2)), populations=("ALL", "ALL"))


# ── metadata agreement ────────────────────────────────────────────────

class TestPopulationAgreement:
    def test_labels_follow_metadata(self, mp_file):
        res = ResultsParser(mp_file).parse()
        assert len(res.results.populations) == 1 + len(res.metadata)
        for i, name in enumerate(res.metadata["pop_name"], start=1):
            assert res.results.populations[i] == name

    def test_block_count_mismatch(self, make_mp):
        rows = []
        for block, label in enumerate(["ALL", "1", "2"]):
            rows.append(f"Pop. {label}")
            rows += [f"{mean_value(block, t):g} 1 0 1" for t in range(5)]
        path = make_mp(results_rows=rows)
        with pytest.raises(StructuralError, match="3 population blocks"):
            ResultsParser(path).parse()

    def test_unequal_blocks(self, make_mp):
        rows = ["Pop. ALL", "1 1 1 1", "2 2 2 2", "Pop. 1", "1 1 1 1"]
        path = make_mp(names=("1",), results_rows=rows)
        with pytest.raises(StructuralError, match="unequal"):
            ResultsParser(path).parse()

    def test_wrong_row_width(self, make_mp):
        rows = ["Pop. ALL", "1 1 1", "Pop. 1", "1 1 1"]
        path = make_mp(names=("1",), results_rows=rows)
        with pytest.raises(StructuralError, match="Expected 4 values"):
            ResultsParser(path).parse()

    def test_non_numeric_value(self, make_mp):
        rows = ["Pop. ALL", "1 1 1 1", "Pop. 1", "1 x 1 1"]
        path = make_mp(names=("1",), duration=1, results_rows=rows)
        with pytest.raises(ParseError) as exc:
            ResultsParser(path).parse()
        assert exc.value.token == "x"
        assert exc.value.line_number is not None


# ── iteration summary & EMA ───────────────────────────────────────────

class TestIterationSummary:
    def test_columns_and_shape(self, mp_file):
        res = ResultsParser(mp_file).parse()
        assert list(res.minmaxterm.columns) == ["min", "max", "terminal"]
        assert res.minmaxterm.shape == (3, 3)
        assert res.minmaxterm.index[0] == 1

    def test_ema_sdma_hand_computed(self, make_mp):
        path = make_mp(minmaxterm=[(10, 100, 50), (20, 110, 60), (60, 120, 70)])
        res = ResultsParser(path).parse()
        assert res.ema == pytest.approx(30.0)
        assert res.sdma == pytest.approx(math.sqrt(700))
        assert res.ema == pytest.approx(res.minmaxterm["min"].mean())
        assert res.sdma == pytest.approx(res.minmaxterm["min"].std(ddof=1))

    def test_single_population_two_iterations(self, make_mp):
        path = make_mp(names=("A",), iterations=2)
        res = ResultsParser(path).parse()
        assert res.n_pops == 1
        assert res.minmaxterm.shape == (2, 3)

    def test_single_population_single_iteration(self, make_mp):
        path = make_mp(names=("A",), iterations=1)
        res = ResultsParser(path).parse()
        assert res.minmaxterm.shape == (1, 3)
        assert res.ema == 10.0
        assert math.isnan(res.sdma)

    def test_iteration_count_mismatch_is_reported(self, make_mp):
        path = make_mp(iterations=3, iteration_line="1000 iterations")
        parser = ResultsParser(path)
        res = parser.parse()
        assert res.iters == 1000
        titles = [f.title for f in res.findings]
        assert "Iteration count mismatch" in titles

    def test_missing_iteration_count(self, make_mp):
        path = make_mp(iteration_line="iterations unknown")
        with pytest.raises(ParseError, match="iteration count"):
            ResultsParser(path).parse()


# ── timestamp ─────────────────────────────────────────────────────────

class TestTimestamp:
    def test_day_first(self):
        assert parse_timestamp("Simulation results 10/08/2014 13:33:04") == \
            datetime(2014, 8, 10, 13, 33, 4)

    def test_twelve_hour_clock(self):
        assert parse_timestamp("Simulation results 10/08/2014 1:33:04 PM") == \
            datetime(2014, 8, 10, 13, 33, 4)

    def test_unreadable(self):
        assert parse_timestamp("Simulation results yesterday") is None

    def test_unreadable_timestamp_is_a_warning(self, make_mp):
        path = make_mp(title="Simulation results sometime")
        res = ResultsParser(path).parse()
        assert res.timestamp is None
        warning = next(f for f in res.findings if f.title == "Unreadable simulation timestamp")
        assert warning.severity == Severity.WARNING

    def test_custom_formats(self, make_mp):
        path = make_mp(title="Simulation results 2014-08-10 13:33")
        res = ResultsParser(path, timestamp_formats=["%Y-%m-%d %H:%M"]).parse()
        assert res.timestamp == datetime(2014, 8, 10, 13, 33)


# ── outcomes ──────────────────────────────────────────────────────────

class TestOutcomes:
    def test_no_results(self, make_mp):
        parser = ResultsParser(make_mp(results=False))
        assert parser.parse() is None
        assert parser.status == ResultsStatus.NO_RESULTS
        assert mptools.results(parser.filepath) is None

    def test_complete(self, mp_file):
        parser = ResultsParser(mp_file)
        assert parser.parse() is not None
        assert parser.status == ResultsStatus.COMPLETE

    def test_missing_trailer_marks_parse_failed(self, make_mp):
        path = make_mp(trailer=False)
        parser = ResultsParser(path)
        with pytest.raises(StructuralError) as exc:
            parser.parse()
        assert str(path) in str(exc.value)
        assert parser.status == ResultsStatus.FAILED

    def test_failure_after_success_marks_failed(self, make_mp):
        parser = ResultsParser(make_mp("good.mp"))
        parser.parse()
        assert parser.status == ResultsStatus.COMPLETE
        parser.filepath = make_mp("broken.mp", trailer=False)
        with pytest.raises(StructuralError):
            parser.parse()
        assert parser.status == ResultsStatus.FAILED

    def test_non_standard_rows_without_results(self, make_mp):
        parser = ResultsParser(make_mp("custom.mp", results=False, extra_fields=2))
        assert parser.parse() is None
        assert parser.status == ResultsStatus.NO_RESULTS

    def test_deterministic(self, mp_file):
        first = ResultsParser(mp_file).parse()
        second = ResultsParser(mp_file).parse()
        np.testing.assert_array_equal(first.results.values, second.results.values)
        assert first.results.populations == second.results.populations
        pd.testing.assert_frame_equal(first.minmaxterm, second.minmaxterm)
        pd.testing.assert_frame_equal(first.metadata, second.metadata)
        assert (first.ema, first.timestamp, first.iters) == \
            (second.ema, second.timestamp, second.iters)
        assert first.sdma == second.sdma

    def test_result_is_frozen(self, mp_file):
        res = ResultsParser(mp_file).parse()
        with pytest.raises(AttributeError):
            res.ema = 0.0

    def test_frames_are_owned_copies(self, mp_file):
        res = ResultsParser(mp_file).parse()
        table = res.minmaxterm.copy()
        table.loc[1, "min"] = -1.0
        rebuilt = dataclasses.replace(res, minmaxterm=table)
        table.loc[2, "min"] = -2.0
        assert rebuilt.minmaxterm is not table
        assert rebuilt.minmaxterm.loc[1, "min"] == -1.0
        assert rebuilt.minmaxterm.loc[2, "min"] == res.minmaxterm.loc[2, "min"]
        assert rebuilt.metadata is not res.metadata
        pd.testing.assert_frame_equal(rebuilt.metadata, res.metadata)


# ── end to end ────────────────────────────────────────────────────────

class TestExample:
    def test_dimensions(self, example_mp):
        res = mptools.results(example_mp)
        assert res.duration == 100
        assert res.n_pops == 263
        assert res.iters == 1000
        assert res.minmaxterm.shape == (1000, 3)

    def test_known_values(self, example_mp):
        res = mptools.results(example_mp)
        assert res.results[0, "mean", "ALL"] == 1000.0
        assert res.results[99, "max", "Pop 263"] == 2000.0 * 264 + 99
        assert res.timestamp == datetime(2014, 8, 10, 13, 33, 4)
        assert res.ema == pytest.approx(10.0 * 1001 / 2)
