from enum import Enum
from pathlib import Path
from typing import Annotated

import pandas as pd
import typer
from rich.console import Console
from rich.table import Table

from rootcube.api import Cube
from rootcube.config import get_cube_settings
from rootcube.exceptions import CubeError
from rootcube.models import CostWeight, MetricKind, SummaryResult
from rootcube.utilities.logger import setup_rich_logger

cli = typer.Typer()


class OutputFormat(str, Enum):
    json = "json"
    table = "table"


@cli.callback()
def main():
    """Explain metric anomalies by the dimension slices that drive them."""


def render_table(result: SummaryResult) -> Table:
    table = Table(
        title=f"{result.baseline_value:g} -> {result.current_value:g} ({result.change_ratio:+.2%})",
    )
    table.add_column("#", justify="right")
    for name in result.dimension_names:
        table.add_column(name)
    for column in ("baseline", "current", "change", "contribution", "cost"):
        table.add_column(column, justify="right")

    for rank, entry in enumerate(result.entries, start=1):
        table.add_row(
            str(rank),
            *entry.dimension_values,
            f"{entry.baseline_value:g}",
            f"{entry.current_value:g}",
            f"{entry.change_ratio:+.2%}",
            f"{entry.contribution:.2%}",
            f"{entry.cost:.4f}",
        )
    return table


@cli.command("summarize")
def summarize(
    path: Annotated[Path, typer.Argument(help="CSV with one row per dimension combination", dir_okay=False)],
    dimensions: Annotated[list[str], typer.Option("--dimension", "-d", help="Dimension column, in schema order")],
    baseline: Annotated[float | None, typer.Option(help="Anomaly baseline total")] = None,
    current: Annotated[float | None, typer.Option(help="Anomaly current total")] = None,
    kind: Annotated[MetricKind, typer.Option(help="Metric kind")] = MetricKind.ADDITIVE,
    max_depth: Annotated[int | None, typer.Option(help="Deepest dimension combination")] = None,
    target_size: Annotated[int | None, typer.Option(help="Number of slices to report")] = None,
    cost_weight: Annotated[CostWeight | None, typer.Option(help="Size weighting")] = None,
    timeout: Annotated[float | None, typer.Option(help="Deadline in seconds")] = None,
    exclude: Annotated[list[str] | None, typer.Option(help="Dimension to leave out")] = None,
    one_side_error: Annotated[bool, typer.Option(help="Only report slices moving with the anomaly")] = False,
    aggregate: Annotated[bool, typer.Option(help="Sum duplicate dimension combinations")] = False,
    output: Annotated[OutputFormat, typer.Option(help="Output format")] = OutputFormat.table,
):
    """Summarize the slices that explain an anomaly in a CSV file."""
    settings = get_cube_settings()
    setup_rich_logger(settings)

    if not path.is_file():
        typer.secho(f"File not found: {path}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    df = pd.read_csv(path, dtype={dimension: str for dimension in dimensions})

    options = {
        "metric_kind": kind,
        "max_depth": max_depth,
        "target_size": target_size,
        "cost_weight": cost_weight,
        "timeout": timeout,
        "excluded_dimensions": list(exclude) if exclude else None,
        "one_side_error": one_side_error,
    }
    overrides = {key: value for key, value in options.items() if value is not None}

    try:
        result = Cube(settings).explain_dataframe(
            df, dimensions, anomaly_baseline=baseline, anomaly_current=current, aggregate=aggregate, **overrides
        )
    except CubeError as e:
        typer.secho(f"{type(e).__name__}: {e.message}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from e

    if output == OutputFormat.json:
        typer.echo(result.model_dump_json(indent=2))
    else:
        Console().print(render_table(result))
