import json
from dataclasses import replace

import pytest

from gtfs_importer import GTFSImporter, PreconditionError
from gtfs_importer.errors import ExtractionError, RemoteError
from gtfs_importer.extract import display_name, extract_files
from gtfs_importer.manifest import REQUIRED_FILES

from tests.fakes import FakeClient, write_items


def test_full_import_publishes_stops_and_uploads_the_rest(config, fake_client, required_items):
    outcome = GTFSImporter(config, fake_client).import_items(required_items)

    assert outcome.ok
    assert len(fake_client.called("add_item")) == len(REQUIRED_FILES)
    assert [c[1] for c in fake_client.called("analyze")] == ["item-Stops"]
    assert [c[1] for c in fake_client.called("publish_item")] == ["item-Stops"]
    shared = {c[1] for c in fake_client.called("share_item")}
    assert "svc-item-Stops" in shared
    assert "item-Stops" not in shared
    assert "item-Stop Times" in shared
    assert {c[2]["groups"] for c in fake_client.called("share_item")} == {"grp-42"}
    assert fake_client.called("create_group") == []


def test_missing_required_file_aborts_before_any_remote_call(config, fake_client, tmp_path):
    items = write_items(tmp_path, [f for f in REQUIRED_FILES if f != "stops.txt"])
    with pytest.raises(PreconditionError) as exc:
        GTFSImporter(config, fake_client).import_items(items)
    assert exc.value.missing == ["stops.txt"]
    assert fake_client.calls == []


def test_unrecognized_files_get_no_tasks(config, fake_client, required_items, tmp_path):
    extra = write_items(tmp_path, ["notes.txt", "shapes.txt"])
    GTFSImporter(config, fake_client).import_items(required_items + extra)

    titles = {c[1] for c in fake_client.called("add_item")}
    assert "Shapes" in titles
    assert "Notes" not in titles


def test_one_failed_chain_does_not_stop_the_others(config, tmp_path, required_items):
    client = FakeClient(fail={("add_item", "Agency"): RemoteError("upload refused")})
    outcome = GTFSImporter(config, client).import_items(required_items)

    assert not outcome.ok
    assert [f.chain for f in outcome.failures] == ["agency.txt"]
    assert str(outcome.failures[0].root_cause) == "upload refused"
    shared = {c[1] for c in client.called("share_item")}
    assert "item-Routes" in shared
    assert "svc-item-Stops" in shared
    assert "item-Agency" not in shared


def test_group_is_created_when_not_configured(config, fake_client, required_items):
    cfg = replace(config, group_id=None)
    GTFSImporter(cfg, fake_client).import_items(required_items)

    (group,) = fake_client.called("create_group")
    assert group[1] == "GTFS Import"
    assert group[2]["access"] == "account"
    assert {c[2]["groups"] for c in fake_client.called("share_item")} == {"grp-1"}


def test_run_extracts_archive_and_writes_state(config, fake_client, feed_zip, tmp_path):
    cfg = replace(config, runs_dir=tmp_path / "runs")
    outcome = GTFSImporter(cfg, fake_client).run(feed_zip)

    assert outcome.ok
    titles = {c[1] for c in fake_client.called("add_item")}
    assert titles == {display_name(f) for f in REQUIRED_FILES + ("shapes.txt",)}

    (state_file,) = (tmp_path / "runs" / "import").glob("*/state.json")
    state = json.loads(state_file.read_text(encoding="utf-8"))
    assert state["ok"] is True
    stops = next(c for c in state["chains"] if c["name"] == "stops.txt")
    assert [s["status"] for s in stops["steps"]] == ["succeeded"] * 4


def test_extract_files_writes_utf8_and_names_items(feed_zip, tmp_path):
    dest = tmp_path / "out"
    dest.mkdir()
    items = extract_files(feed_zip, dest)

    by_name = {i.file_name: i for i in items}
    assert by_name["stop_times.txt"].name == "Stop Times"
    assert by_name["stop_times.txt"].path == dest / "stop_times.txt"
    assert "café" in by_name["agency.txt"].path.read_text(encoding="utf-8")


def test_unreadable_archive_raises_extraction_error(config, fake_client, tmp_path):
    bogus = tmp_path / "feed.zip"
    bogus.write_bytes(b"not a zip")
    with pytest.raises(ExtractionError):
        GTFSImporter(config, fake_client).run(bogus)
    assert fake_client.calls == []


def test_duplicate_file_names_in_archive_are_rejected(config, fake_client, tmp_path):
    import zipfile

    archive = tmp_path / "dupes.zip"
    with zipfile.ZipFile(archive, "w") as zf:
        for name in REQUIRED_FILES:
            zf.writestr(name, "id\n1\n")
        zf.writestr("extra/stops.txt", "id\n2\n")

    with pytest.raises(ExtractionError, match="stops.txt twice"):
        GTFSImporter(config, fake_client).run(archive)
    assert fake_client.calls == []
