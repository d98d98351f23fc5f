from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer

from sheetmerge.config import MergeConfig, load_config, save_config
from sheetmerge.errors import MergeError
from sheetmerge.plans.render import render_preview
from sheetmerge.session import MergeSession

app = typer.Typer(help="sheet-merge: reconcile a spreadsheet into a Notion-style database")


def _fail(msg: str) -> None:
    typer.secho(msg, fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)


def _open_session(config_path: Path, sheet: Optional[Path], sheet_name: Optional[str]) -> MergeSession:
    try:
        cfg = load_config(config_path)
        session = MergeSession(cfg)
        if sheet is not None:
            session.load_source(sheet, sheet=sheet_name if sheet_name is not None else 0)
        session.load_database()
    except (MergeError, FileNotFoundError, ValueError) as e:
        _fail(f"[ERROR] {e}")
    return session


@app.command("init-config")
def init_config(
    out: Path = typer.Argument(Path("merge.yaml"), help="Where to write the starter merge file"),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file"),
):
    """Write a merge file pointing at the built-in demo database."""
    if out.exists() and not force:
        _fail(f"{out} exists (use --force to overwrite)")
    cfg = MergeConfig.from_dict({
        "join": {"type": "left", "source_key": "Key", "record_key": "Key"},
        "mappings": [{"source": "Amount", "target": "Amount"}],
    })
    save_config(cfg, out)
    typer.secho(f"Wrote {out}", fg=typer.colors.GREEN)


@app.command()
def inspect(
    config: Path = typer.Argument(..., help="Merge file (YAML)"),
    sheet: Optional[Path] = typer.Option(None, "--sheet", "-s", help="Spreadsheet or CSV to join"),
    sheet_name: Optional[str] = typer.Option(None, "--sheet-name", help="Worksheet name (default: first)"),
):
    """Show the database schema and, with --sheet, the join summary."""
    session = _open_session(config, sheet, sheet_name)
    schema = session.schema
    typer.echo(f"Database {schema.id}: {len(session.records)} record(s)")
    for prop in schema.properties.values():
        extra = f"  options: {', '.join(prop.option_names)}" if prop.has_options else ""
        typer.echo(f"  {prop.name} ({prop.type}){extra}")
    if session.source is not None:
        typer.echo(f"Sheet columns: {', '.join(session.source.columns)}")
        typer.echo(json.dumps(session.summary().to_dict(), indent=2))


@app.command()
def preview(
    config: Path = typer.Argument(..., help="Merge file (YAML)"),
    sheet: Path = typer.Option(..., "--sheet", "-s", help="Spreadsheet or CSV to merge"),
    sheet_name: Optional[str] = typer.Option(None, "--sheet-name", help="Worksheet name (default: first)"),
    limit: int = typer.Option(0, "--limit", help="Max plans to list (0 = all)"),
):
    """Dry run: list what would change for every key."""
    session = _open_session(config, sheet, sheet_name)
    try:
        plans = session.preview()
    except MergeError as e:
        _fail(f"[ERROR] {e}")
    typer.echo(render_preview(plans, session.summary(), join_type=session.config.join_type, limit=limit))


@app.command()
def execute(
    config: Path = typer.Argument(..., help="Merge file (YAML)"),
    sheet: Path = typer.Option(..., "--sheet", "-s", help="Spreadsheet or CSV to merge"),
    sheet_name: Optional[str] = typer.Option(None, "--sheet-name", help="Worksheet name (default: first)"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Apply without asking"),
):
    """Apply the merge to the database."""
    session = _open_session(config, sheet, sheet_name)
    try:
        plans = session.preview()
    except MergeError as e:
        _fail(f"[ERROR] {e}")

    typer.echo(render_preview(plans, session.summary(), join_type=session.config.join_type, limit=20))
    if not yes and not typer.confirm("Apply these changes?"):
        raise typer.Exit(code=1)

    report = session.execute(on_progress=lambda pct: typer.echo(f"progress {pct}%"))
    typer.echo(json.dumps(report.summary(), indent=2))
    if not report.ok:
        _fail(f"[ERROR] {report.error}")
    typer.secho(
        f"Done: {report.updated} updated, {report.created} created, {report.skipped} skipped",
        fg=typer.colors.GREEN,
    )


def main():
    app()


if __name__ == "__main__":
    main()
