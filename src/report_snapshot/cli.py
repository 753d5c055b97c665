from __future__ import annotations

import json
from pathlib import Path
from typing import Any, List, Optional

import typer

from .config import configure_logging, load_settings
from .errors import ReportSnapshotError, UnknownTrendMethodError
from .ingest import load_json_object, load_rows
from .snapshot import build_snapshot, normalize_snapshot, preview_report
from .trends.scoring import DEFAULT_REGISTRY
from .utils import dumps_stable, now_iso, write_json

app = typer.Typer(add_completion=False, help="Report snapshot engine (build, preview and migrate report snapshots)")

# ---- Trend method commands ----
methods_app = typer.Typer(help="Inspect available trend scoring methods.")
app.add_typer(methods_app, name="methods")


@app.callback()
def main_callback() -> None:
    configure_logging(load_settings())


def _emit(obj: Any, out: Optional[Path]) -> None:
    if out is None:
        typer.echo(dumps_stable(obj))
    else:
        write_json(out, obj)
        typer.echo(f"Wrote: {out}")


@methods_app.command("list")
def list_methods() -> None:
    """
    List registered trend scoring methods. The default method is marked.
    """
    for name in DEFAULT_REGISTRY.list_methods():
        meta = DEFAULT_REGISTRY.describe_method(name)
        suffix = " (default)" if meta.get("default") else ""
        typer.echo(f"{name}{suffix}")


@methods_app.command("describe")
def describe_method(
    method: str = typer.Option(..., "--method", help="Trend method name to describe")
) -> None:
    """
    Show metadata for a trend scoring method as stable JSON.
    """
    try:
        meta = DEFAULT_REGISTRY.describe_method(method)
    except UnknownTrendMethodError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1)
    typer.echo(json.dumps(meta, indent=2, sort_keys=True))


@app.command()
def normalize(
    snapshot: Path = typer.Argument(..., help="Path to a stored snapshot JSON file"),
    out: Optional[Path] = typer.Option(None, "--out", help="Write the normalized snapshot here instead of stdout"),
):
    """
    Upgrade a stored snapshot of any known version to the current version.

    Exits with code 1 when the snapshot is not structurally valid.
    """
    try:
        raw = load_json_object(snapshot, "Snapshot")
        normalized = normalize_snapshot(raw)
    except FileNotFoundError as e:
        typer.echo(f"ERROR: {e}", err=True)
        raise typer.Exit(code=2)
    except (ValueError, ReportSnapshotError) as e:
        typer.echo(f"ERROR: {e}", err=True)
        raise typer.Exit(code=1)

    if normalized is None:
        typer.echo(f"ERROR: {snapshot} is not a valid report snapshot.", err=True)
        raise typer.Exit(code=1)
    _emit(normalized, out)


@app.command()
def build(
    config: Path = typer.Option(..., "--config", help="Report config JSON file"),
    data: Path = typer.Option(..., "--data", help="Table rows (.csv or .json)"),
    trends: Optional[Path] = typer.Option(None, "--trends", help="Raw trend series JSON (list of {trendId, series})"),
    out: Optional[Path] = typer.Option(None, "--out", help="Write the snapshot here instead of stdout"),
    timestamp: bool = typer.Option(True, "--timestamp/--no-timestamp", help="Record generatedAt (off for byte-stable output)"),
):
    """
    Build a current-version snapshot from a config and raw rows.
    """
    try:
        cfg = load_json_object(config, "Config")
        rows = load_rows(data)
        trend_series = load_json_object(trends, "Trends") if trends is not None else None
        if trend_series is not None and not isinstance(trend_series, list):
            raise ValueError(f"{trends} must contain a list of trend objects.")
        snapshot = build_snapshot(
            cfg,
            rows,
            trend_series=trend_series,
            generated_at=now_iso() if timestamp else None,
        )
    except FileNotFoundError as e:
        typer.echo(f"ERROR: {e}", err=True)
        raise typer.Exit(code=2)
    except (ValueError, ReportSnapshotError) as e:
        typer.echo(f"ERROR: {e}", err=True)
        raise typer.Exit(code=1)
    _emit(snapshot, out)


@app.command()
def preview(
    config: Path = typer.Option(..., "--config", help="Report config JSON file"),
    data: Path = typer.Option(..., "--data", help="Table rows (.csv or .json)"),
    limit: int = typer.Option(20, "--limit", min=1, help="Maximum rows to show"),
    attribute: Optional[List[str]] = typer.Option(
        None, "--attribute", help="Attribute to summarize (repeatable; default: every column)"
    ),
):
    """
    Show summary metrics and the first rows of the filtered and sorted preview.
    """
    try:
        cfg = load_json_object(config, "Config")
        rows = load_rows(data)
        result = preview_report(rows, cfg, attributes=attribute or None, limit=limit)
    except FileNotFoundError as e:
        typer.echo(f"ERROR: {e}", err=True)
        raise typer.Exit(code=2)
    except (ValueError, ReportSnapshotError) as e:
        typer.echo(f"ERROR: {e}", err=True)
        raise typer.Exit(code=1)

    metrics = result.metrics
    typer.echo(
        f"Rows: {len(result.rows)} shown (of {len(rows)} input); "
        f"{metrics.total_rows} matched ({metrics.filter_match_rate}%)"
    )
    typer.echo(dumps_stable({"metrics": metrics.model_dump(by_alias=True, mode="json"), "rows": result.rows}))
