from __future__ import annotations

import zipfile
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import BinaryIO, Union

from orchestrator.logging import get_logger

from .errors import ExtractionError

log = get_logger("gtfs_importer.extract")

Archive = Union[str, Path, BinaryIO]


@dataclass(frozen=True)
class ImportItem:
    name: str
    file_name: str
    path: Path


def display_name(file_name: str) -> str:
    """`stop_times.txt` -> `Stop Times`."""
    stem = file_name.replace(".txt", "")
    return " ".join(part.capitalize() for part in stem.split("_"))


def extract_files(archive: Archive, dest: str | Path) -> list[ImportItem]:
    """Write every file entry of `archive` under `dest` as UTF-8 text.

    Entries nested in folders are flattened to their base name; directory
    entries are skipped.
    """
    dest = Path(dest)
    items: list[ImportItem] = []
    seen: dict[str, str] = {}
    try:
        with zipfile.ZipFile(archive) as zf:
            for info in zf.infolist():
                if info.is_dir():
                    continue
                file_name = PurePosixPath(info.filename).name
                if not file_name:
                    continue
                if file_name in seen:
                    raise ExtractionError(
                        f"Archive holds {file_name} twice: {seen[file_name]} and {info.filename}"
                    )
                seen[file_name] = info.filename
                path = dest / file_name
                text = zf.read(info).decode("utf-8", errors="replace")
                path.write_text(text, encoding="utf-8")
                items.append(
                    ImportItem(name=display_name(file_name), file_name=file_name, path=path)
                )
    except (zipfile.BadZipFile, OSError) as e:
        raise ExtractionError(f"Unable to read archive {archive!r}: {e}") from e
    log.info("Extracted %d files to %s", len(items), dest)
    return items
