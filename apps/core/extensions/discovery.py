"""
Extension discovery from installed packages and the local extensions folder
"""

import importlib.util
import logging
from importlib.metadata import entry_points
from pathlib import Path
from typing import Iterable, List

from .types import (
    API_EXTENSION_TYPES,
    ENTRY_POINT_GROUP,
    EXTENSION_NAME_REGEX,
    Extension,
    ExtensionType,
)

logger = logging.getLogger(__name__)


def ensure_extension_dirs(root_path: str, types: Iterable[ExtensionType]) -> None:
    """Create <root>/<type>s for every enabled type"""
    root = Path(root_path)
    for extension_type in types:
        (root / extension_type.plural).mkdir(parents=True, exist_ok=True)


def get_package_extensions(
    types: Iterable[ExtensionType],
    group: str = ENTRY_POINT_GROUP,
) -> List[Extension]:
    """
    Discover extensions shipped by installed distributions.

    A distribution advertises an extension with an entry point in the
    '<group>.<type>' group, e.g.:

        [project.entry-points."lodestar.extensions.hook"]
        audit-log = "lodestar_audit_log.hook"

    The module's location is resolved without importing it.
    """
    extensions: List[Extension] = []

    for extension_type in types:
        for ep in entry_points(group=f"{group}.{extension_type.value}"):
            if not EXTENSION_NAME_REGEX.match(ep.name):
                logger.warning(f"Ignoring package extension with invalid name: {ep.name}")
                continue

            try:
                spec = importlib.util.find_spec(ep.module)
            except (ImportError, ValueError) as e:
                logger.warning(f"Couldn't resolve package extension {ep.name}: {e}")
                continue

            if spec is None or spec.origin is None:
                logger.warning(f"Couldn't locate module {ep.module} for package extension {ep.name}")
                continue

            origin = Path(spec.origin).resolve()
            if extension_type in API_EXTENSION_TYPES:
                path, entrypoint = origin.parent, origin.name
            else:
                # App extensions ship their built index.js next to the module
                path, entrypoint = origin.parent, None

            extensions.append(
                Extension(
                    name=ep.name,
                    type=extension_type,
                    path=str(path),
                    entrypoint=entrypoint,
                    local=False,
                )
            )
            logger.debug(f"Discovered package extension: {ep.name} ({extension_type.value})")

    return extensions


def get_local_extensions(root_path: str, types: Iterable[ExtensionType]) -> List[Extension]:
    """
    Discover extensions from the local extensions folder.
    Each extension is a directory under <root>/<type>s/.
    """
    extensions: List[Extension] = []
    root = Path(root_path)

    for extension_type in types:
        type_dir = root / extension_type.plural

        if not type_dir.exists():
            logger.debug(f"Local extensions directory does not exist: {type_dir}")
            continue

        for item in sorted(type_dir.iterdir()):
            if not item.is_dir() or item.name.startswith((".", "_")):
                continue

            extensions.append(
                Extension(
                    name=item.name,
                    type=extension_type,
                    path=str(item.resolve()),
                    local=True,
                )
            )
            logger.debug(f"Discovered local extension: {item.name} ({extension_type.value})")

    return extensions


def merge_extensions(*groups: Iterable[Extension]) -> List[Extension]:
    """Flatten extension lists, keeping the first extension for each name"""
    merged: List[Extension] = []
    seen = set()

    for group in groups:
        for extension in group:
            if extension.name in seen:
                logger.warning(f"Duplicate extension name \"{extension.name}\", ignoring {extension.path}")
                continue
            seen.add(extension.name)
            merged.append(extension)

    return merged
