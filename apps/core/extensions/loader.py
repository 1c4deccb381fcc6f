"""
Module registry for extension code.

Extension modules are loaded from their file path under a private module
name and kept in a registry keyed by resolved path, so a reload can drop
exactly the modules a previous generation loaded.
"""

import hashlib
import importlib.util
import logging
import sys
from pathlib import Path
from types import ModuleType
from typing import Any, Dict, Union

from exceptions import ExtensionLoadError

logger = logging.getLogger(__name__)

MODULE_PREFIX = "lodestar_extension_"


class ModuleRegistry:
    """Loads extension modules by path and evicts them on unload()"""

    def __init__(self):
        self._modules: Dict[str, ModuleType] = {}

    @staticmethod
    def _key(path: Union[str, Path]) -> str:
        return str(Path(path).resolve())

    @staticmethod
    def _module_name(key: str) -> str:
        digest = hashlib.sha1(key.encode("utf-8")).hexdigest()[:12]
        return f"{MODULE_PREFIX}{digest}"

    def load(self, path: Union[str, Path]) -> ModuleType:
        """Load (or return the already loaded) module at path"""
        key = self._key(path)

        if key in self._modules:
            return self._modules[key]

        filepath = Path(key)
        if not filepath.is_file():
            raise ExtensionLoadError(f"Extension entrypoint not found: {filepath}")

        module_name = self._module_name(key)
        is_package = filepath.name == "__init__.py"

        spec = importlib.util.spec_from_file_location(
            module_name,
            filepath,
            submodule_search_locations=[str(filepath.parent)] if is_package else None,
        )
        if spec is None or spec.loader is None:
            raise ExtensionLoadError(f"Could not load spec for {filepath}")

        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        try:
            spec.loader.exec_module(module)
        except BaseException:
            self._evict(module_name)
            raise

        self._modules[key] = module
        logger.debug(f"Loaded extension module {filepath} as {module_name}")
        return module

    def unload(self, path: Union[str, Path]) -> bool:
        """
        Drop the module loaded from path, including any submodules it imported
        relatively. Returns False if nothing was loaded from path.
        """
        key = self._key(path)
        module = self._modules.pop(key, None)
        if module is None:
            return False

        self._evict(module.__name__)
        logger.debug(f"Unloaded extension module {key}")
        return True

    @staticmethod
    def _evict(module_name: str) -> None:
        for name in list(sys.modules):
            if name == module_name or name.startswith(f"{module_name}."):
                del sys.modules[name]

    def is_loaded(self, path: Union[str, Path]) -> bool:
        return self._key(path) in self._modules

    def __len__(self) -> int:
        return len(self._modules)


def get_module_default(module: ModuleType) -> Any:
    """
    Return what an extension module exports: its `default` attribute, or
    failing that its `register` attribute.
    """
    for attr in ("default", "register"):
        if hasattr(module, attr):
            return getattr(module, attr)

    raise ExtensionLoadError(
        f"Extension module {module.__file__} exports neither 'default' nor 'register'"
    )
