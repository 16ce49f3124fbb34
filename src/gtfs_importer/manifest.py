"""GTFS file manifest and per-file publish policy.

Files listed as required must all be present in a feed. Optional files are
imported when present. Anything else is ignored. A file with a publish
policy is turned into a feature service; the rest are uploaded as-is.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping

REQUIRED_FILES = (
    "agency.txt",
    "stops.txt",
    "routes.txt",
    "trips.txt",
    "stop_times.txt",
    "calendar.txt",
)

OPTIONAL_FILES = (
    "calendar_dates.txt",
    "fare_attributes.txt",
    "fare_rules.txt",
    "shapes.txt",
    "frequencies.txt",
    "transfers.txt",
    "feed_info.txt",
)

PUBLISH_POLICY: dict[str, dict] = {
    "stops.txt": {
        "name": "Stops",
        "locationType": "coordinates",
        "latitudeFieldName": "stop_lat",
        "longitudeFieldName": "stop_lon",
    },
}


@dataclass(frozen=True)
class Manifest:
    required: tuple[str, ...] = REQUIRED_FILES
    optional: tuple[str, ...] = OPTIONAL_FILES
    publish: Mapping[str, Mapping] = field(default_factory=lambda: dict(PUBLISH_POLICY))

    @property
    def recognized(self) -> tuple[str, ...]:
        return self.required + self.optional

    def missing(self, file_names: Iterable[str]) -> list[str]:
        present = set(file_names)
        return [f for f in self.required if f not in present]

    def is_recognized(self, file_name: str) -> bool:
        return file_name in self.recognized

    def policy_for(self, file_name: str) -> Mapping | None:
        return self.publish.get(file_name)

    def requiredness(self, file_name: str) -> str | None:
        if file_name in self.required:
            return "required"
        if file_name in self.optional:
            return "optional"
        return None


DEFAULT_MANIFEST = Manifest()
