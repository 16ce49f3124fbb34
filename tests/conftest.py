import zipfile

import pytest

from gtfs_importer.config import ImportConfig
from gtfs_importer.manifest import REQUIRED_FILES

from tests.fakes import FakeClient, write_items


@pytest.fixture
def config():
    return ImportConfig(username="user", password="secret", group_id="grp-42")


@pytest.fixture
def fake_client():
    return FakeClient()


@pytest.fixture
def required_items(tmp_path):
    return write_items(tmp_path, REQUIRED_FILES)


@pytest.fixture
def feed_zip(tmp_path):
    """A feed with every required file, one optional file and a stray one."""
    path = tmp_path / "feed.zip"
    with zipfile.ZipFile(path, "w") as zf:
        for name in REQUIRED_FILES + ("shapes.txt", "notes.txt"):
            zf.writestr(name, f"{name}_id,value\n1,café\n")
    return path
