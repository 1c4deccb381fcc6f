"""
App extension bundles.

Every app extension type gets one ES module bundle that default-exports the
list of extensions of that type. Shared framework dependencies are not
inlined: their imports point at the files the app build already serves.
"""

import asyncio
import json
import logging
import os
import re
from typing import Dict, Iterable, List, Optional, Protocol

import httpx

from exceptions import BundleError

from .types import APP_EXTENSION_TYPES, APP_SHARED_DEPS, Extension, ExtensionType

logger = logging.getLogger(__name__)


class Bundler(Protocol):
    async def bundle(self, entry: str, external: List[str], aliases: Dict[str, str]) -> str:
        """Compile entry source into a single ES module"""
        ...


def generate_extensions_entry(extension_type: ExtensionType, extensions: Iterable[Extension]) -> str:
    """Source of the virtual entry module for one app extension type"""
    type_extensions = [e for e in extensions if e.type == extension_type]

    imports = "".join(
        f"import e{i} from {json.dumps(e.entry_path.as_posix())};\n"
        for i, e in enumerate(type_extensions)
    )
    names = ",".join(f"e{i}" for i in range(len(type_extensions)))

    return f"{imports}export default [{names}];"


def shared_dep_slug(dep: str) -> str:
    return dep.replace("/", "_")


def rewrite_imports(code: str, aliases: Dict[str, str]) -> str:
    """Point bare imports of shared dependencies at their hosted URLs"""
    for name, url in aliases.items():
        pattern = re.compile(r"(\bfrom\s*|\bimport\s*\(?\s*)([\"'])" + re.escape(name) + r"\2")
        code = pattern.sub(lambda m: f"{m.group(1)}{m.group(2)}{url}{m.group(2)}", code)
    return code


class EsbuildBundler:
    """Bundles an entry with the esbuild CLI"""

    def __init__(self, executable: str = "esbuild", timeout: float = 60.0):
        self.executable = executable
        self.timeout = timeout

    async def bundle(self, entry: str, external: List[str], aliases: Dict[str, str]) -> str:
        args = [
            "--bundle",
            "--format=esm",
            "--minify",
            "--log-level=error",
            "--sourcefile=entry.js",
        ]
        # Shared deps stay as bare imports and are rewritten afterwards
        args += [f"--external:{name}" for name in aliases]
        args += [f"--external:{url}" for url in external]

        try:
            process = await asyncio.create_subprocess_exec(
                self.executable,
                *args,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise BundleError(f"Bundler executable not found: {self.executable}") from e

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(entry.encode("utf-8")), timeout=self.timeout
            )
        except asyncio.TimeoutError as e:
            process.kill()
            await process.wait()
            raise BundleError(f"Bundler timed out after {self.timeout}s") from e

        if process.returncode != 0:
            raise BundleError(stderr.decode("utf-8").strip() or f"Bundler exited with {process.returncode}")

        return rewrite_imports(stdout.decode("utf-8"), aliases)


class BundleGenerator:
    """Compiles all app extension types into bundles"""

    def __init__(
        self,
        bundler: Bundler,
        app_dist_path: str,
        public_url: str,
        shared_deps: Optional[List[str]] = None,
    ):
        self.bundler = bundler
        self.app_dist_path = app_dist_path
        self.public_url = public_url
        self.shared_deps = shared_deps if shared_deps is not None else list(APP_SHARED_DEPS)

    async def get_shared_deps_mapping(self) -> Dict[str, str]:
        """
        Map each shared dependency to the root-relative URL of its built file.

        A file matches when its name up to the first '.' equals the
        dependency name with '/' replaced by '_'. Missing deps are logged
        and left out.
        """
        app_dir = await asyncio.to_thread(os.listdir, self.app_dist_path)
        base_path = httpx.URL(self.public_url).path.rstrip("/")

        mapping: Dict[str, str] = {}
        for dep in self.shared_deps:
            slug = shared_dep_slug(dep)
            dep_file = next(
                (f for f in sorted(app_dir) if "." in f and f.split(".", 1)[0] == slug),
                None,
            )

            if dep_file:
                mapping[dep] = f"{base_path}/admin/{dep_file}"
            else:
                logger.warning(f"Couldn't find shared extension dependency \"{dep}\"")

        return mapping

    async def generate(self, extensions: List[Extension]) -> Dict[ExtensionType, str]:
        """Build a fresh bundle map; any bundler failure aborts the whole pass"""
        mapping = await self.get_shared_deps_mapping()

        bundles: Dict[ExtensionType, str] = {}
        for extension_type in APP_EXTENSION_TYPES:
            entry = generate_extensions_entry(extension_type, extensions)
            bundles[extension_type] = await self.bundler.bundle(
                entry,
                external=list(mapping.values()),
                aliases=mapping,
            )
            logger.debug(f"Bundled {extension_type.plural}")

        return bundles
