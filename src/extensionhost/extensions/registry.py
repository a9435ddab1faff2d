"""Extension discovery.

Scans extension root directories for subdirectories containing a
package.json and keeps the resulting descriptors. The registry is
populated once and is read-only afterwards.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator
from pathlib import Path

from extensionhost.errors import ManifestError
from extensionhost.extensions.manifest import MANIFEST_FILENAME, parse_package_json
from extensionhost.extensions.metadata import ExtensionMetadata

_log = logging.getLogger(__name__)

ManifestParser = Callable[[str, str], ExtensionMetadata]


class ExtensionRegistry:
    """Holds the descriptors of all discovered extensions.

    Lookup is by extension name. Iteration follows discovery order:
    root paths in the order given, subdirectories alphabetically.
    """

    def __init__(self, manifest_parser: ManifestParser | None = None) -> None:
        self._parser: ManifestParser = manifest_parser or parse_package_json
        self._extensions: dict[str, ExtensionMetadata] = {}

    def scan(self, paths: Iterable[str | Path]) -> list[ExtensionMetadata]:
        """Discover extensions under each root path.

        A broken extension is logged and skipped; it never aborts the scan.

        Args:
            paths: Extension root directories.

        Returns:
            Descriptors added by this scan, in discovery order.
        """
        found: list[ExtensionMetadata] = []
        for root in paths:
            for metadata in self._scan_path(Path(root)):
                if metadata.name in self._extensions:
                    _log.warning(
                        "Duplicate extension '%s' at '%s' ignored (already loaded from '%s').",
                        metadata.name,
                        metadata.path,
                        self._extensions[metadata.name].path,
                    )
                    continue
                self._extensions[metadata.name] = metadata
                found.append(metadata)
        return found

    def _scan_path(self, root: Path) -> list[ExtensionMetadata]:
        _log.info("Scanning '%s' for extensions.", root)
        if not root.is_dir():
            _log.warning("Extension path %s doesn't exist.", root)
            return []

        try:
            entries = sorted(root.iterdir())
        except OSError as e:
            _log.warning("Error listing %s: %s", root, e)
            return []

        result: list[ExtensionMetadata] = []
        for entry in entries:
            if not entry.is_dir():
                continue
            manifest_path = entry / MANIFEST_FILENAME
            if not manifest_path.is_file():
                _log.warning("Unable to read %s, skipping", manifest_path)
                continue
            metadata = self._load_manifest(entry)
            if metadata is not None:
                result.append(metadata)
                _log.info("Read extension metadata from '%s'.", entry)
        return result

    def _load_manifest(self, extension_dir: Path) -> ExtensionMetadata | None:
        manifest_path = extension_dir / MANIFEST_FILENAME
        try:
            text = manifest_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            _log.warning("Error reading %s: %s", manifest_path, e)
            return None

        try:
            return self._parser(text, str(extension_dir))
        except ManifestError as e:
            _log.warning("An error occurred while processing '%s': %s", manifest_path, e)
            return None
        except Exception as e:
            # Custom parsers may raise anything
            _log.warning("Manifest parser failed on '%s': %s", manifest_path, e)
            return None

    def lookup(self, name: str) -> ExtensionMetadata | None:
        """Get an extension descriptor by name, or None if unknown."""
        return self._extensions.get(name)

    def list_extensions(self) -> list[ExtensionMetadata]:
        return list(self._extensions.values())

    def __contains__(self, name: object) -> bool:
        return name in self._extensions

    def __iter__(self) -> Iterator[ExtensionMetadata]:
        return iter(list(self._extensions.values()))

    def __len__(self) -> int:
        return len(self._extensions)
