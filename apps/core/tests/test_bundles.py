import pytest

from conftest import FakeBundler, write_extension
from exceptions import BundleError
from extensions.bundles import BundleGenerator, EsbuildBundler, generate_extensions_entry, rewrite_imports
from extensions.types import APP_EXTENSION_TYPES, Extension, ExtensionType, RegisteredEventHook

HOOK = """
def register(context):
    return {"items.create": lambda payload: None}
"""


def test_entry_imports_every_extension_of_the_type():
    extensions = [
        Extension(name="clock", type=ExtensionType.PANEL, path="/ext/panels/clock"),
        Extension(name="audit", type=ExtensionType.HOOK, path="/ext/hooks/audit"),
        Extension(name="weather", type=ExtensionType.PANEL, path="/ext/panels/weather", entrypoint="dist/index.js"),
    ]

    entry = generate_extensions_entry(ExtensionType.PANEL, extensions)

    assert entry == (
        'import e0 from "/ext/panels/clock/index.js";\n'
        'import e1 from "/ext/panels/weather/dist/index.js";\n'
        "export default [e0,e1];"
    )


def test_entry_for_type_without_extensions():
    assert generate_extensions_entry(ExtensionType.LAYOUT, []) == "export default [];"


def test_rewrite_imports_points_shared_deps_at_urls():
    code = 'import{ref as a}from"vue";import b from "vue-router";import("vue");import c from"vuex";'

    rewritten = rewrite_imports(code, {"vue": "/admin/vue.3f2a.js", "vue-router": "/admin/vue-router.91bc.js"})

    assert rewritten == (
        'import{ref as a}from"/admin/vue.3f2a.js";'
        'import b from "/admin/vue-router.91bc.js";'
        'import("/admin/vue.3f2a.js");'
        'import c from"vuex";'
    )


async def test_shared_deps_mapping_uses_public_url_path(app_dist, caplog):
    (app_dist / "@lodestar_extensions-sdk.c0de.js").write_text("")
    generator = BundleGenerator(FakeBundler(), str(app_dist), "https://example.com/lodestar/")

    mapping = await generator.get_shared_deps_mapping()

    assert mapping == {
        "@lodestar/extensions-sdk": "/lodestar/admin/@lodestar_extensions-sdk.c0de.js",
        "vue": "/lodestar/admin/vue.3f2a.js",
        "vue-router": "/lodestar/admin/vue-router.91bc.js",
        "pinia": "/lodestar/admin/pinia.77aa.js",
    }
    assert "Couldn't find shared extension dependency \"vue-i18n\"" in caplog.text


async def test_generate_builds_one_bundle_per_app_type(app_dist):
    bundler = FakeBundler()
    generator = BundleGenerator(bundler, str(app_dist), "/")
    panel = Extension(name="clock", type=ExtensionType.PANEL, path="/ext/panels/clock")

    bundles = await generator.generate([panel])

    assert list(bundles) == APP_EXTENSION_TYPES
    assert "/ext/panels/clock/index.js" in bundles[ExtensionType.PANEL]
    assert bundles[ExtensionType.INTERFACE] == "/* bundle */export default [];"

    call = bundler.calls[0]
    assert call["aliases"]["vue"] == "/admin/vue.3f2a.js"
    assert sorted(call["external"]) == sorted(call["aliases"].values())


async def test_bundler_failure_aborts_the_whole_pass(app_dist):
    bundler = FakeBundler(fail_on="clock")
    generator = BundleGenerator(bundler, str(app_dist), "/")
    panel = Extension(name="clock", type=ExtensionType.PANEL, path="/ext/panels/clock")

    with pytest.raises(RuntimeError, match="cannot bundle clock"):
        await generator.generate([panel])


async def test_manager_serves_bundles_in_app_mode(manager, settings, extensions_root):
    settings.extensions.serve_app = True
    write_extension(extensions_root, "interface", "color-picker", "export default {};", filename="index.js")

    await manager.initialize()

    assert manager.list_extensions(ExtensionType.INTERFACE) == ["color-picker"]
    assert "color-picker/index.js" in manager.get_app_extensions("interface")
    assert (extensions_root / "panels").is_dir()


async def test_bundle_failure_rejects_initialize_after_core_registration(settings, installer, extensions_root):
    from extensions import ExtensionManager

    settings.extensions.serve_app = True
    write_extension(extensions_root, "hook", "audit", HOOK)
    write_extension(extensions_root, "panel", "clock", "export default {};", filename="index.js")
    manager = ExtensionManager(settings, installer=installer, bundler=FakeBundler(fail_on="clock"))

    with pytest.raises(RuntimeError):
        await manager.initialize()

    assert not manager.is_initialized
    assert isinstance(manager.registered_hooks[0], RegisteredEventHook)
    assert manager.emitter.listener_count("items.create") == 1

    # A later attempt starts from a clean slate instead of stacking hooks
    manager.bundle_generator.bundler = FakeBundler()
    await manager.initialize()

    assert manager.is_initialized
    assert manager.emitter.listener_count("items.create") == 1

    await manager.shutdown()


async def test_missing_app_dist_fails_bundling(settings, installer, tmp_path):
    from extensions import ExtensionManager

    settings.extensions.serve_app = True
    settings.extensions.app_dist_path = str(tmp_path / "nowhere")
    manager = ExtensionManager(settings, installer=installer, bundler=FakeBundler())

    with pytest.raises(FileNotFoundError):
        await manager.initialize()


def write_esbuild_stub(tmp_path, body):
    """Shell script standing in for the esbuild CLI"""
    stub = tmp_path / "esbuild"
    stub.write_text("#!/bin/sh\n" + body)
    stub.chmod(0o755)
    return str(stub)


async def test_esbuild_bundler_rewrites_shared_imports(tmp_path):
    stdin_file = tmp_path / "stdin.js"
    args_file = tmp_path / "args.txt"
    executable = write_esbuild_stub(
        tmp_path,
        f'cat > "{stdin_file}"\n'
        f'echo "$@" > "{args_file}"\n'
        "echo 'import{ref as a}from\"vue\";export default[];'\n",
    )
    bundler = EsbuildBundler(executable=executable)

    code = await bundler.bundle("export default [];", ["/admin/sdk.js"], {"vue": "/admin/vue.3f2a.js"})

    assert code.strip() == 'import{ref as a}from"/admin/vue.3f2a.js";export default[];'
    assert stdin_file.read_text() == "export default [];"
    args = args_file.read_text().split()
    assert "--bundle" in args and "--format=esm" in args
    assert "--external:vue" in args
    assert "--external:/admin/sdk.js" in args


async def test_esbuild_failure_raises_bundle_error(tmp_path):
    executable = write_esbuild_stub(tmp_path, 'cat > /dev/null\necho "Could not resolve \\"./missing\\"" >&2\nexit 1\n')
    bundler = EsbuildBundler(executable=executable)

    with pytest.raises(BundleError, match="Could not resolve"):
        await bundler.bundle("import x from './missing';", [], {})


async def test_missing_esbuild_raises_bundle_error(tmp_path):
    bundler = EsbuildBundler(executable=str(tmp_path / "bin" / "esbuild"))

    with pytest.raises(BundleError, match="not found"):
        await bundler.bundle("export default [];", [], {})


async def test_esbuild_timeout_kills_the_process(tmp_path):
    executable = write_esbuild_stub(tmp_path, "exec sleep 5\n")
    bundler = EsbuildBundler(executable=executable, timeout=0.2)

    with pytest.raises(BundleError, match="timed out"):
        await bundler.bundle("export default [];", [], {})
