"""Import a zipped GTFS feed into an ArcGIS portal.

Each recognised file becomes an uploaded CSV item; files with a publish
policy (stops.txt) are additionally published as a feature service. Every
result is shared to a group.
"""

from .config import ImportConfig
from .errors import ConfigError, ExtractionError, GTFSImportError, PreconditionError, RemoteError
from .importer import GTFSImporter
from .manifest import DEFAULT_MANIFEST, Manifest

__all__ = [
    "ConfigError",
    "DEFAULT_MANIFEST",
    "ExtractionError",
    "GTFSImportError",
    "GTFSImporter",
    "ImportConfig",
    "Manifest",
    "PreconditionError",
    "RemoteError",
]
