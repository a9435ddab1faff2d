"""Loading of extension entry-point modules.

An extension's ``main`` is a Python file (or a package directory) relative
to the extension directory. It is imported under a private module name so
that two extensions can both ship a ``main.py``. The module must expose::

    def activate(context: ExtensionContext) -> Any: ...

and may expose::

    def deactivate(is_real_shutdown: bool) -> None: ...
"""

from __future__ import annotations

import hashlib
import importlib.util
import logging
import re
import sys
from pathlib import Path
from types import ModuleType
from typing import Any, Protocol, runtime_checkable

from extensionhost.errors import ExtensionLoadError
from extensionhost.extensions.metadata import ExtensionMetadata

_log = logging.getLogger(__name__)

MODULE_PREFIX = "extensionhost_ext_"


@runtime_checkable
class ExtensionModule(Protocol):
    """Shape every extension entry-point module must have."""

    def activate(self, context: Any) -> Any: ...


def module_name_for(metadata: ExtensionMetadata) -> str:
    """Private ``sys.modules`` key for an extension's entry point.

    The readable part is lossy (``my-ext`` and ``my_ext`` both become
    ``my_ext``), so a digest of the exact name keeps the keys distinct.
    """
    safe = re.sub(r"\W", "_", metadata.name)
    digest = hashlib.sha1(metadata.name.encode("utf-8")).hexdigest()[:10]
    return f"{MODULE_PREFIX}{safe}_{digest}"


def resolve_entry_point(metadata: ExtensionMetadata) -> Path:
    """Return the file to import for ``metadata.main``.

    Raises:
        ExtensionLoadError: If the extension has no entry point or it is missing.
    """
    if not metadata.main:
        raise ExtensionLoadError(metadata.name, "no 'main' entry point declared")

    main_path = Path(metadata.path) / metadata.main
    if main_path.is_dir():
        main_path = main_path / "__init__.py"
    elif not main_path.exists() and main_path.suffix == "":
        main_path = main_path.with_suffix(".py")

    if not main_path.is_file():
        raise ExtensionLoadError(metadata.name, f"entry point {main_path} does not exist")
    return main_path


def import_extension_module(metadata: ExtensionMetadata) -> ModuleType:
    """Import the extension's entry point.

    Raises:
        ExtensionLoadError: If the file is missing, fails to import, or has
            no ``activate`` function.
    """
    main_path = resolve_entry_point(metadata)
    module_name = module_name_for(metadata)

    spec = importlib.util.spec_from_file_location(
        module_name,
        main_path,
        submodule_search_locations=[str(main_path.parent)]
        if main_path.name == "__init__.py"
        else None,
    )
    if spec is None or spec.loader is None:
        raise ExtensionLoadError(metadata.name, f"cannot import {main_path}")

    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        sys.modules.pop(module_name, None)
        raise ExtensionLoadError(metadata.name, f"error while importing {main_path}: {e}") from e

    if not isinstance(module, ExtensionModule) or not callable(module.activate):
        sys.modules.pop(module_name, None)
        raise ExtensionLoadError(metadata.name, f"{main_path} has no activate() function")

    return module


def load_extension_module(metadata: ExtensionMetadata) -> ModuleType | None:
    """Import an extension's entry point, logging and returning None on failure."""
    try:
        return import_extension_module(metadata)
    except ExtensionLoadError as e:
        _log.warning("Unable to load extension module. %s", e)
        return None


def unload_extension_module(metadata: ExtensionMetadata) -> None:
    """Forget the imported module and its submodules."""
    module_name = module_name_for(metadata)
    for name in [n for n in sys.modules if n == module_name or n.startswith(module_name + ".")]:
        del sys.modules[name]
