"""Task chains for one imported file.

Simple chain:  create -> share
Publish chain: create -> analyze -> publish(create, analyze) -> share
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from orchestrator import Chain, Task, WorkflowSet
from orchestrator.logging import get_logger

from .extract import ImportItem
from .manifest import DEFAULT_MANIFEST, Manifest

log = get_logger("gtfs_importer.chains")


@dataclass(frozen=True)
class ChainOptions:
    group_id: str
    tags: str = "gtfs"
    item_type: str = "CSV"
    filetype: str = "csv"
    everyone: bool = True
    org: bool = True


def merge_publish_parameters(analysis: Mapping[str, Any], policy: Mapping[str, Any]) -> dict:
    """Union of analyzed parameters and the static policy; the policy wins."""
    merged = dict(analysis)
    for key, value in policy.items():
        if key in merged and merged[key] != value:
            log.warning(
                "Publish policy overrides analyzed %s: %r -> %r", key, merged[key], value
            )
        merged[key] = value
    return merged


def _create(client, item: ImportItem, opts: ChainOptions):
    def create() -> dict:
        log.info("Creating %s", item.name)
        with open(item.path, "rb") as fh:
            return client.add_item(
                title=item.name, type=opts.item_type, tags=opts.tags, file=fh,
                filename=item.file_name,
            )

    return create


def _share(client, item: ImportItem, opts: ChainOptions, item_id_of):
    def share(upstream: dict) -> dict:
        log.info("Sharing %s", item.name)
        return client.share_item(
            item_id_of(upstream), groups=opts.group_id, everyone=opts.everyone, org=opts.org
        )

    return share


def simple_chain(client, item: ImportItem, opts: ChainOptions) -> Chain:
    chain = Chain(name=item.file_name)
    create = chain.add(Task(f"{item.file_name}:create", _create(client, item, opts)))
    chain.add(
        Task(
            f"{item.file_name}:share",
            _share(client, item, opts, lambda created: created["id"]),
            depends_on=[create],
        )
    )
    return chain


def publish_chain(
    client, item: ImportItem, opts: ChainOptions, policy: Mapping[str, Any]
) -> Chain:
    chain = Chain(name=item.file_name)
    create = chain.add(Task(f"{item.file_name}:create", _create(client, item, opts)))

    def analyze(created: dict) -> dict:
        log.info("Analyzing %s", item.name)
        return client.analyze(item_id=created["id"], filetype=opts.filetype)

    def publish(created: dict, analysis: dict) -> dict:
        log.info("Publishing %s", item.name)
        params = merge_publish_parameters(analysis.get("publishParameters") or {}, policy)
        return client.publish_item(
            item_id=created["id"], filetype=opts.filetype, publish_parameters=params
        )

    analyzed = chain.add(Task(f"{item.file_name}:analyze", analyze, depends_on=[create]))
    published = chain.add(
        Task(f"{item.file_name}:publish", publish, depends_on=[create, analyzed])
    )
    chain.add(
        Task(
            f"{item.file_name}:share",
            _share(client, item, opts, lambda p: p["services"][0]["serviceItemId"]),
            depends_on=[published],
        )
    )
    return chain


def build_chain(
    client, item: ImportItem, opts: ChainOptions, manifest: Manifest = DEFAULT_MANIFEST
) -> Chain:
    policy = manifest.policy_for(item.file_name)
    if policy is not None:
        return publish_chain(client, item, opts, policy)
    return simple_chain(client, item, opts)


def build_workflows(
    client,
    items: Iterable[ImportItem],
    opts: ChainOptions,
    manifest: Manifest = DEFAULT_MANIFEST,
) -> WorkflowSet:
    workflows = WorkflowSet()
    for item in items:
        workflows.add(build_chain(client, item, opts, manifest))
    workflows.validate()
    return workflows
