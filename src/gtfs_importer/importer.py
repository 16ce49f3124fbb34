from __future__ import annotations

import tempfile
from typing import Iterable

from orchestrator import AggregateOutcome, Executor, collect
from orchestrator.logging import get_logger
from orchestrator.state import build_state, new_run_id, write_state

from .chains import ChainOptions, build_workflows
from .config import ImportConfig
from .errors import PreconditionError, RemoteError
from .extract import Archive, ImportItem, extract_files
from .manifest import DEFAULT_MANIFEST, Manifest


class GTFSImporter:
    """Publishes the files of a GTFS feed, one task chain per file.

    A feed missing any required file is rejected before any remote call.
    Failures inside a chain are isolated to it and reported together at
    the end of the run.
    """

    def __init__(
        self,
        config: ImportConfig,
        client,
        *,
        executor: Executor | None = None,
        manifest: Manifest = DEFAULT_MANIFEST,
    ):
        self.config = config
        self.client = client
        self.executor = executor or Executor(max_workers=config.max_workers, name="import")
        self.manifest = manifest
        if config.log_file is not None:
            # Child loggers propagate to these two, so one file captures the run
            for name in ("orchestrator", "gtfs_importer"):
                get_logger(name, log_file=config.log_file)
        self.logger = get_logger("gtfs_importer.importer")

    def run(self, archive: Archive) -> AggregateOutcome:
        with tempfile.TemporaryDirectory(prefix="gtfs-") as tmp:
            items = extract_files(archive, tmp)
            return self.import_items(items)

    def check_required(self, items: Iterable[ImportItem]) -> None:
        missing = self.manifest.missing(i.file_name for i in items)
        if missing:
            raise PreconditionError(missing)

    def select(self, items: Iterable[ImportItem]) -> list[ImportItem]:
        kept = []
        for item in items:
            if self.manifest.is_recognized(item.file_name):
                kept.append(item)
            else:
                self.logger.debug("Ignoring nonstandard file %s", item.file_name)
        return kept

    def resolve_group(self) -> str:
        if self.config.group_id:
            return self.config.group_id
        self.logger.info("Creating GTFS Group")
        created = self.client.create_group(
            title=self.config.group_title,
            access="account",
            description="An import of GTFS data",
        )
        try:
            return created["group"]["id"]
        except (KeyError, TypeError) as e:
            raise RemoteError("createGroup returned no group id") from e

    def import_items(self, items: Iterable[ImportItem]) -> AggregateOutcome:
        items = list(items)
        self.check_required(items)
        items = self.select(items)

        self.client.connect()
        opts = ChainOptions(
            group_id=self.resolve_group(),
            tags=self.config.tags,
            everyone=self.config.share_everyone,
            org=self.config.share_org,
        )
        workflows = build_workflows(self.client, items, opts, self.manifest)
        self.logger.info(
            "Importing %d files (%d tasks)", len(workflows), len(workflows.tasks())
        )
        self.executor.run(workflows.tasks())
        outcome = collect(workflows)

        if self.config.runs_dir is not None:
            path = write_state(
                self.config.runs_dir,
                build_state("import", new_run_id(), workflows, outcome),
            )
            self.logger.info("Run state written to %s", path)

        if outcome.ok:
            self.logger.info(outcome.message())
        else:
            self.logger.error("Import finished with %d failures", len(outcome.failures))
        return outcome
