"""
Unit tests for the Cube API.
"""

import pandas as pd
import pytest

from rootcube import Cube
from rootcube.config import CubeSettings
from rootcube.exceptions import (
    CubeError,
    DegenerateAnomalyError,
    DepthExceededError,
    EmptyInputError,
    InconsistentAggregateError,
    InvalidInputError,
    SummaryTimeoutError,
)
from rootcube.models import CostWeight, SummaryConfig, SummaryResult


class TestCubeAPI:
    """Tests for the Cube API class."""

    @pytest.fixture
    def cube(self, settings):
        """Return a Cube API instance."""
        return Cube(settings)

    def test_explain_example(self, cube, schema, anomaly_rows):
        """Test the anomalous slice is the single best explanation."""
        # Act
        result = cube.explain(anomaly_rows, 400, 600, schema, max_depth=2, target_size=1)

        # Assert
        assert isinstance(result, SummaryResult)
        assert result.baseline_value == 400
        assert result.current_value == 600
        assert result.change_ratio == pytest.approx(0.5)
        assert result.node_count == 7
        assert len(result.entries) == 1
        entry = result.entries[0]
        assert entry.dimensions == {"country": "US", "device": "desktop"}
        assert entry.dimension_values == ["US", "desktop"]
        assert entry.level == 2
        assert entry.change_ratio == pytest.approx(2.0)
        assert entry.contribution == pytest.approx(1.0)
        assert entry.cost == pytest.approx(1 / 1.75)
        assert entry.score == pytest.approx(0.75)
        assert entry.direction == "up"
        assert [cost.dimension for cost in result.dimension_costs] == ["country", "device"]

    def test_explain_accepts_dicts_and_names(self, cube, anomaly_rows):
        rows = [row.model_dump(exclude={"kind"}) for row in anomaly_rows]

        result = cube.explain(rows, 400, 600, ["country", "device"], target_size=1)

        assert result.entries[0].dimension_values == ["US", "desktop"]

    def test_explain_is_deterministic(self, cube, schema, anomaly_rows):
        first = cube.explain(anomaly_rows, 400, 600, schema)
        second = cube.explain(anomaly_rows, 400, 600, schema)

        assert first.to_dict() == second.to_dict()

    def test_target_size_zero(self, cube, schema, anomaly_rows):
        result = cube.explain(anomaly_rows, 400, 600, schema, target_size=0)

        assert result.entries == []

    def test_inconsistent_aggregates_fail_every_time(self, cube, schema, anomaly_rows):
        """Test a mismatching anomaly total is rejected on every call."""
        for _ in range(2):
            with pytest.raises(InconsistentAggregateError) as exc_info:
                cube.explain(anomaly_rows, 400, 700, schema)

            assert exc_info.value.expected == {"baseline": 400, "current": 700}
            assert exc_info.value.actual == {"baseline": 400, "current": 600}
            assert exc_info.value.tolerance == 1e-6

    def test_aggregates_within_tolerance(self, cube, schema, anomaly_rows):
        result = cube.explain(anomaly_rows, 400, 600.0000001, schema, target_size=1)

        assert len(result.entries) == 1

    def test_empty_rows(self, cube, schema):
        with pytest.raises(EmptyInputError):
            cube.explain([], 0, 0, schema)

    def test_depth_is_checked_before_any_work(self, cube, schema, anomaly_rows, mocker):
        build = mocker.patch("rootcube.api.HierarchyBuilder.build")

        with pytest.raises(DepthExceededError):
            cube.explain(anomaly_rows, 400, 600, schema, max_depth=7)

        build.assert_not_called()

    def test_invalid_overrides(self, cube, schema, anomaly_rows):
        with pytest.raises(InvalidInputError, match="Unknown summary options"):
            cube.explain(anomaly_rows, 400, 600, schema, depth=2)

        with pytest.raises(InvalidInputError, match="Invalid summary configuration") as exc_info:
            cube.explain(anomaly_rows, 400, 600, schema, target_size=-1)

        assert "validation_errors" in exc_info.value.invalid_fields

    def test_invalid_dict_row(self, cube, schema):
        with pytest.raises(InvalidInputError, match="Invalid row"):
            cube.explain([{"dimension_values": ["US", "mobile"], "baseline": 1}], 1, 1, schema)

    def test_row_kind_mismatch(self, cube, schema, anomaly_rows):
        with pytest.raises(InvalidInputError, match="metric kind"):
            cube.explain(anomaly_rows, 400, 600, schema, metric_kind="ratio")

    def test_degenerate_anomaly(self, cube, schema, flat_rows):
        with pytest.raises(DegenerateAnomalyError):
            cube.explain(flat_rows, 400, 400, schema)

    def test_changes_cancel_out(self, cube, schema, cancelling_rows):
        result = cube.explain(cancelling_rows, 400, 400, schema, target_size=2)

        assert [entry.dimension_values for entry in result.entries] == [["US", "desktop"], ["US", "mobile"]]
        assert [entry.contribution for entry in result.entries] == [0.0, 0.0]
        assert [entry.direction for entry in result.entries] == ["down", "up"]

    def test_ratio_metric(self, cube, schema, ratio_rows):
        result = cube.explain(ratio_rows, 0.1, 0.2, schema, metric_kind="ratio", target_size=1)

        assert result.metric_kind == "ratio"
        assert result.entries[0].dimensions == {"country": "US"}
        assert result.entries[0].baseline_value == pytest.approx(0.1)
        assert result.entries[0].current_value == pytest.approx(0.3)
        assert result.entries[0].contribution == pytest.approx(1.0)

    def test_excluded_dimensions(self, cube, schema, anomaly_rows):
        result = cube.explain(anomaly_rows, 400, 600, schema, excluded_dimensions=["country"])

        assert all(set(entry.dimensions) == {"device"} for entry in result.entries)
        assert [cost.dimension for cost in result.dimension_costs] == ["device"]

    def test_weight_function(self, cube, schema, anomaly_rows):
        result = cube.explain(anomaly_rows, 400, 600, schema, weight_function=lambda share: 1.0, target_size=1)

        assert result.entries[0].score == pytest.approx(1.5)

    def test_timeout(self, cube, schema, anomaly_rows):
        with pytest.raises(SummaryTimeoutError) as exc_info:
            cube.explain(anomaly_rows, 400, 600, schema, timeout=0)

        assert exc_info.value.timeout == 0

    def test_timeout_without_hierarchy_levels(self, cube, schema, anomaly_rows):
        """Test an expired deadline fails even when no level or search step runs."""
        # Act
        with pytest.raises(SummaryTimeoutError) as exc_info:
            cube.explain(anomaly_rows, 400, 600, schema, max_depth=0, target_size=1, timeout=0)

        # Assert
        assert exc_info.value.stage == "validation"
        assert isinstance(exc_info.value, TimeoutError)

    def test_deadline_passing_during_result_mapping(self, cube, schema, anomaly_rows, mocker):
        mocker.patch("rootcube.api.Deadline.check", side_effect=[None, SummaryTimeoutError("late", 1.0, "result")])

        with pytest.raises(SummaryTimeoutError, match="late"):
            cube.explain(anomaly_rows, 400, 600, schema, max_depth=0, timeout=1.0)

    def test_unexpected_errors_are_wrapped(self, cube, schema, anomaly_rows, mocker):
        mocker.patch("rootcube.api.SummarySearch.summarize", side_effect=RuntimeError("boom"))

        with pytest.raises(CubeError, match="boom") as exc_info:
            cube.explain(anomaly_rows, 400, 600, schema)

        assert exc_info.value.details == {"original_error": "RuntimeError"}


class TestCubeConfig:
    """Tests for configuration handling in the Cube API."""

    def test_default_config_from_settings(self):
        settings = CubeSettings(_env_file=None, DEFAULT_MAX_DEPTH=2, DEFAULT_TARGET_SIZE=4, DEFAULT_COST_WEIGHT="log")
        cube = Cube(settings)

        config = cube.get_default_config()

        assert config.max_depth == 2
        assert config.target_size == 4
        assert config.cost_weight == CostWeight.LOG

    def test_explicit_config(self, settings, schema, anomaly_rows):
        config = SummaryConfig(max_depth=1, target_size=1)

        result = Cube(settings).explain(anomaly_rows, 400, 600, schema, config=config)

        assert result.max_depth == 1
        assert result.entries[0].level == 1

    def test_overrides_win_over_config(self, settings):
        config = SummaryConfig(max_depth=1, target_size=1)

        resolved = Cube(settings).resolve_config(config, target_size=5)

        assert resolved.max_depth == 1
        assert resolved.target_size == 5


class TestExplainDataFrame:
    """Tests for DataFrame input."""

    @pytest.fixture
    def cube(self, settings):
        return Cube(settings)

    def test_explain_dataframe(self, cube, anomaly_df):
        result = cube.explain_dataframe(anomaly_df, ["country", "device"], 400, 600, target_size=1)

        assert result.entries[0].dimension_values == ["US", "desktop"]

    def test_totals_default_to_the_roll_up(self, cube, anomaly_df):
        result = cube.explain_dataframe(anomaly_df, ["country", "device"], target_size=1)

        assert result.baseline_value == 400
        assert result.current_value == 600

    def test_missing_columns(self, cube, anomaly_df):
        with pytest.raises(InvalidInputError, match="Missing columns") as exc_info:
            cube.explain_dataframe(anomaly_df, ["country", "browser"])

        assert exc_info.value.invalid_fields == {"missing_columns": ["browser"]}

    def test_value_columns(self, cube, anomaly_df):
        df = anomaly_df.rename(columns={"baseline": "last_week", "current": "this_week"})

        result = cube.explain_dataframe(
            df,
            ["country", "device"],
            value_columns={"baseline": "last_week", "current": "this_week"},
            target_size=1,
        )

        assert result.entries[0].dimensions == {"country": "US", "device": "desktop"}

    def test_duplicates(self, cube, anomaly_df):
        extra = pd.DataFrame([{"country": "US", "device": "desktop", "baseline": 0, "current": 50}])
        df = pd.concat([anomaly_df, extra], ignore_index=True)

        with pytest.raises(InvalidInputError, match="Duplicate"):
            cube.explain_dataframe(df, ["country", "device"])

        result = cube.explain_dataframe(df, ["country", "device"], aggregate=True, target_size=1)
        assert result.current_value == 650
        assert result.entries[0].current_value == 350

    def test_ratio_frame(self, cube, ratio_rows):
        records = []
        for row in ratio_rows:
            country, device = row.dimension_values
            records.append(
                {"country": country, "device": device, **row.model_dump(exclude={"kind", "dimension_values"})}
            )
        df = pd.DataFrame(records)

        result = cube.explain_dataframe(df, ["country", "device"], metric_kind="ratio", target_size=1)

        assert result.baseline_value == pytest.approx(0.1)
        assert result.current_value == pytest.approx(0.2)
        assert result.entries[0].dimensions == {"country": "US"}

    def test_non_string_dimensions_are_cast(self, cube):
        df = pd.DataFrame(
            [
                {"year": 2023, "baseline": 10, "current": 10},
                {"year": 2024, "baseline": 10, "current": 30},
            ]
        )

        result = cube.explain_dataframe(df, ["year"], target_size=1)

        assert result.entries[0].dimensions == {"year": "2024"}
