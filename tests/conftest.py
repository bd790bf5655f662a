"""
Common fixtures for all tests in the rootcube package.
"""

import pandas as pd
import pytest

from rootcube.config import CubeSettings
from rootcube.models import AdditiveRow, DimensionSchema, RatioRow


@pytest.fixture
def schema():
    """Fixture providing the two-dimension schema used by most tests."""
    return DimensionSchema.from_names(["country", "device"])


@pytest.fixture
def three_dimension_schema():
    """Fixture providing a three-dimension schema."""
    return DimensionSchema.from_names(["country", "device", "channel"])


@pytest.fixture
def anomaly_rows():
    """
    Fixture providing rows where only US desktop moved.

    The roll-up goes from 400 to 600, a global change of 50%.
    """
    return [
        AdditiveRow(dimension_values=("US", "mobile"), baseline=100, current=100),
        AdditiveRow(dimension_values=("US", "desktop"), baseline=100, current=300),
        AdditiveRow(dimension_values=("EU", "mobile"), baseline=100, current=100),
        AdditiveRow(dimension_values=("EU", "desktop"), baseline=100, current=100),
    ]


@pytest.fixture
def flat_rows():
    """Fixture providing rows where nothing changed."""
    return [
        AdditiveRow(dimension_values=(country, device), baseline=100, current=100)
        for country in ("US", "EU")
        for device in ("mobile", "desktop")
    ]


@pytest.fixture
def cancelling_rows():
    """Fixture providing rows whose changes cancel out at the root (400 -> 400)."""
    return [
        AdditiveRow(dimension_values=("US", "mobile"), baseline=100, current=150),
        AdditiveRow(dimension_values=("US", "desktop"), baseline=100, current=50),
        AdditiveRow(dimension_values=("EU", "mobile"), baseline=100, current=100),
        AdditiveRow(dimension_values=("EU", "desktop"), baseline=100, current=100),
    ]


@pytest.fixture
def ratio_rows():
    """Fixture providing conversion-rate rows; the roll-up goes from 0.1 to 0.2."""
    return [
        RatioRow(
            dimension_values=("US", "mobile"),
            baseline_numerator=10,
            baseline_denominator=100,
            current_numerator=30,
            current_denominator=100,
        ),
        RatioRow(
            dimension_values=("US", "desktop"),
            baseline_numerator=10,
            baseline_denominator=100,
            current_numerator=30,
            current_denominator=100,
        ),
        RatioRow(
            dimension_values=("EU", "mobile"),
            baseline_numerator=10,
            baseline_denominator=100,
            current_numerator=10,
            current_denominator=100,
        ),
        RatioRow(
            dimension_values=("EU", "desktop"),
            baseline_numerator=10,
            baseline_denominator=100,
            current_numerator=10,
            current_denominator=100,
        ),
    ]


@pytest.fixture
def three_dimension_rows():
    """Fixture providing eight rows over three dimensions, every slice with a distinct positive delta."""
    rows = []
    combinations = [
        (country, device, channel)
        for country in ("EU", "US")
        for device in ("desktop", "mobile")
        for channel in ("app", "web")
    ]
    for i, values in enumerate(combinations):
        baseline = 10.0 + i
        rows.append(AdditiveRow(dimension_values=values, baseline=baseline, current=baseline + (i + 1) * 3))
    return rows


@pytest.fixture
def anomaly_df(anomaly_rows):
    """Fixture providing the anomaly rows as a DataFrame."""
    records = []
    for row in anomaly_rows:
        country, device = row.dimension_values
        records.append({"country": country, "device": device, "baseline": row.baseline, "current": row.current})
    return pd.DataFrame(records)


@pytest.fixture
def settings():
    """Fixture providing settings isolated from the environment."""
    return CubeSettings(_env_file=None)
