# pytest fixtures for extension host tests
import os
import sys
import textwrap
from pathlib import Path

os.environ.setdefault("DB_URL", "sqlite+aiosqlite:///:memory:")
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from config import AppConfig, ExtensionsConfig
from extensions import ExtensionManager


class FakeInstaller:
    """Stands in for pip; records what it was asked to install"""

    def __init__(self, result: bool = True):
        self.result = result
        self.calls = []

    async def __call__(self, name: str) -> bool:
        self.calls.append(name)
        return self.result


class FakeBundler:
    """Returns a recognisable bundle per entry"""

    def __init__(self, fail_on: str = None):
        self.fail_on = fail_on
        self.calls = []

    async def bundle(self, entry, external, aliases):
        self.calls.append({"entry": entry, "external": external, "aliases": aliases})
        if self.fail_on and self.fail_on in entry:
            raise RuntimeError(f"cannot bundle {self.fail_on}")
        return f"/* bundle */{entry}"


def write_extension(root: Path, type_: str, name: str, source: str, filename: str = "__init__.py") -> Path:
    folder = root / f"{type_}s" / name
    folder.mkdir(parents=True, exist_ok=True)
    entry = folder / filename
    entry.write_text(textwrap.dedent(source))
    return entry


@pytest.fixture
def extensions_root(tmp_path) -> Path:
    root = tmp_path / "extensions"
    root.mkdir()
    return root


@pytest.fixture
def app_dist(tmp_path) -> Path:
    dist = tmp_path / "dist"
    dist.mkdir()
    for filename in ("vue.3f2a.js", "vue-router.91bc.js", "pinia.77aa.js", "index.html"):
        (dist / filename).write_text("")
    return dist


@pytest.fixture
def settings(extensions_root, app_dist) -> AppConfig:
    return AppConfig(
        extensions=ExtensionsConfig(
            path=str(extensions_root),
            serve_app=False,
            public_url="https://lodestar.example.com/",
            app_dist_path=str(app_dist),
        )
    )


@pytest.fixture
def installer() -> FakeInstaller:
    return FakeInstaller()


@pytest.fixture
def bundler() -> FakeBundler:
    return FakeBundler()


@pytest.fixture
async def manager(settings, installer, bundler):
    manager = ExtensionManager(settings, installer=installer, bundler=bundler)
    yield manager
    await manager.shutdown()
