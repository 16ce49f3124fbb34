from __future__ import annotations

from dataclasses import replace
from pathlib import Path

import typer

from orchestrator.logging import get_logger

from .client import ArcGISClient
from .config import ImportConfig
from .errors import GTFSImportError
from .importer import GTFSImporter
from .manifest import DEFAULT_MANIFEST


app = typer.Typer(add_completion=False, help="Import a GTFS feed into ArcGIS")
log = get_logger("gtfs_importer.cli")


@app.command("manifest")
def list_manifest():
    """List the files recognised in a feed and how each is published."""
    for name in DEFAULT_MANIFEST.recognized:
        shape = "publish" if DEFAULT_MANIFEST.policy_for(name) is not None else "simple"
        typer.echo(f"- {name} ({DEFAULT_MANIFEST.requiredness(name)}, {shape})")


@app.command()
def run(
    archive: Path = typer.Argument(..., help="Path to the GTFS zip file"),
    config: str = typer.Option("configs/base.yaml", help="Path to YAML config"),
    group_id: str = typer.Option("", help="Share into this group instead of the configured one"),
    max_workers: int = typer.Option(0, help="Worker pool size (0 = default)"),
):
    """Upload every recognised file of ARCHIVE and share it."""
    try:
        cfg = ImportConfig.load(config)
    except GTFSImportError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=2)
    overrides = {}
    if group_id:
        overrides["group_id"] = group_id
    if max_workers:
        overrides["max_workers"] = max_workers
    if overrides:
        cfg = replace(cfg, **overrides)

    client = ArcGISClient(
        cfg.host,
        cfg.username,
        cfg.password,
        referer=cfg.referer,
        timeout=cfg.timeout_seconds,
    )
    try:
        with client:
            outcome = GTFSImporter(cfg, client).run(archive)
    except GTFSImportError as e:
        log.error("Import aborted: %s", e)
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1)

    if not outcome.ok:
        typer.echo(outcome.message(), err=True)
        raise typer.Exit(code=1)
    typer.echo(outcome.message())


def main():  # pragma: no cover
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
