"""
Module registry used to follow references between generated modules.
"""

from __future__ import annotations

import importlib.util
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .records import Record, build
from .types import Field

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegisteredModule:
    name: str
    fields: tuple[Field, ...]
    required: tuple[str, ...]


class ModuleRegistry:
    """Maps module names to their field tables.

    A registry is created and owned by the calling code; generated modules
    only add themselves to one through their ``register`` function.
    """

    def __init__(self):
        self._modules: dict[str, RegisteredModule] = {}

    def add(self, name: str, fields: Iterable[Field], required: Iterable[str] = ()) -> None:
        self._modules[name] = RegisteredModule(name=name, fields=tuple(fields), required=tuple(required))

    def get(self, name: str) -> RegisteredModule | None:
        return self._modules.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._modules

    def __len__(self) -> int:
        return len(self._modules)

    def names(self) -> list[str]:
        return sorted(self._modules)

    def build(self, name: str, params: Mapping[str, Any] | None = None) -> Record:
        """Build a record for a registered module, following nested references."""
        module = self._modules[name]
        return build(module.name, module.fields, params, module.required, registry=self)

    def load_directory(self, directory: str | Path) -> list[str]:
        """
        Import every generated module in a directory and register it.

        Args:
            directory: Directory holding generated ``.py`` files

        Returns:
            Names of the modules that were registered
        """
        registered = []
        for path in sorted(Path(directory).glob("*.py")):
            if path.name.startswith("__"):
                continue
            spec = importlib.util.spec_from_file_location(f"_smelter_generated.{path.stem}", path)
            if spec is None or spec.loader is None:
                continue
            module = importlib.util.module_from_spec(spec)
            spec.loader.exec_module(module)
            register = getattr(module, "register", None)
            if register is None:
                logger.debug("Skipping %s: no register function", path)
                continue
            register(self)
            registered.append(module.MODULE_NAME)
        return registered
