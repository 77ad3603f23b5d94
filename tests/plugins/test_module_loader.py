"""Tests for node module loading."""

import asyncio
import os
import py_compile
import subprocess
import sys
import textwrap
import time
from pathlib import Path

import pytest

from node_extractor.errors import ModuleLoadError, ModuleLoadTimeout
from node_extractor.plugins.loader import (
    ModuleCache,
    ModuleLoader,
    SearchPath,
    evict_local_modules,
)


class TestSearchPath:
    def test_prepends_and_restores(self, tmp_path: Path):
        paths = SearchPath()
        entry = str(tmp_path)

        with paths.prepended(tmp_path):
            assert sys.path[0] == entry
            assert paths.active == {entry: 1}

        assert entry not in sys.path
        assert paths.active == {}

    def test_restores_on_error(self, tmp_path: Path):
        paths = SearchPath()

        with pytest.raises(RuntimeError):
            with paths.prepended(tmp_path):
                raise RuntimeError("boom")

        assert str(tmp_path) not in sys.path

    def test_nested_users_share_entry(self, tmp_path: Path):
        paths = SearchPath()
        entry = str(tmp_path)

        with paths.prepended(tmp_path):
            with paths.prepended(tmp_path):
                assert sys.path.count(entry) == 1
                assert paths.active[entry] == 2
            # The outer user still needs it
            assert entry in sys.path

        assert entry not in sys.path

    def test_preexisting_entry_left_alone(self, tmp_path: Path):
        paths = SearchPath()
        entry = str(tmp_path)
        sys.path.append(entry)
        try:
            with paths.prepended(tmp_path):
                assert paths.active == {}
            assert entry in sys.path
        finally:
            sys.path.remove(entry)

    def test_order_of_multiple_directories(self, tmp_path: Path):
        first, second = tmp_path / "a", tmp_path / "b"
        with SearchPath().prepended(first, second):
            assert sys.path[:2] == [str(first), str(second)]


class TestModuleCache:
    def test_generations_increase(self, tmp_path: Path):
        cache = ModuleCache()
        path = tmp_path / "a.py"

        name1, gen1 = cache.begin(path)
        name2, gen2 = cache.begin(path)

        assert (gen1, gen2) == (1, 2)
        assert name1 != name2
        # Only the latest generation may commit
        assert cache.commit(path, gen1, type(sys)(name1)) is False
        assert cache.commit(path, gen2, type(sys)(name2)) is True
        assert len(cache) == 1

    def test_stale_commit_is_discarded(self, tmp_path: Path):
        cache = ModuleCache()
        path = tmp_path / "a.py"
        name, gen = cache.begin(path)
        module = type(sys)(name)
        sys.modules[name] = module

        cache.abandon(path, gen)

        assert cache.commit(path, gen, module) is False
        assert name not in sys.modules
        assert len(cache) == 0

    def test_begin_evicts_previous_module(self, tmp_path: Path):
        cache = ModuleCache()
        path = tmp_path / "a.py"
        name, gen = cache.begin(path)
        module = type(sys)(name)
        sys.modules[name] = module
        assert cache.commit(path, gen, module)

        cache.begin(path)

        assert name not in sys.modules
        assert len(cache) == 0

    def test_clear(self, tmp_path: Path):
        cache = ModuleCache()
        path = tmp_path / "a.py"
        name, gen = cache.begin(path)
        module = type(sys)(name)
        sys.modules[name] = module
        cache.commit(path, gen, module)

        cache.clear()

        assert len(cache) == 0
        assert name not in sys.modules


class TestModuleLoader:
    @pytest.mark.asyncio
    async def test_load_module(self, tmp_path: Path):
        path = tmp_path / "Simple.node.py"
        path.write_text("VALUE = 42\n")
        loader = ModuleLoader()

        module = await loader.load(path)

        assert module.VALUE == 42
        assert sys.modules[module.__name__] is module
        assert len(loader.cache) == 1
        loader.cache.clear()

    @pytest.mark.asyncio
    async def test_dependency_directory_on_path_during_import(self, tmp_path: Path):
        deps = tmp_path / "site-packages"
        deps.mkdir()
        (deps / "loader_test_helper_lib.py").write_text("GREETING = 'hi'\n")
        path = tmp_path / "Uses.node.py"
        path.write_text("import loader_test_helper_lib\nVALUE = loader_test_helper_lib.GREETING\n")

        module = await ModuleLoader().load(path, [deps])

        assert module.VALUE == "hi"
        assert str(deps) not in sys.path
        sys.modules.pop("loader_test_helper_lib", None)

    @pytest.mark.asyncio
    async def test_missing_dependency_raises_load_error(self, tmp_path: Path):
        path = tmp_path / "Broken.node.py"
        path.write_text("import loader_test_definitely_missing\n")

        with pytest.raises(ModuleLoadError):
            await ModuleLoader().load(path)

    @pytest.mark.asyncio
    async def test_reload_sees_file_changes(self, tmp_path: Path):
        path = tmp_path / "Changing.node.py"
        path.write_text("VALUE = 1\n")
        loader = ModuleLoader()

        first = await loader.load(path)
        path.write_text("VALUE = 2  # changed\n")
        second = await loader.load(path)

        assert (first.VALUE, second.VALUE) == (1, 2)
        assert first.__name__ not in sys.modules
        loader.cache.clear()

    @pytest.mark.asyncio
    async def test_load_compiled_module(self, tmp_path: Path):
        source = tmp_path / "Compiled.node.py"
        source.write_text("VALUE = 'compiled'\n")
        compiled = tmp_path / "Compiled.node.pyc"
        py_compile.compile(str(source), cfile=str(compiled), doraise=True)
        source.unlink()

        module = await ModuleLoader().load(compiled)

        assert module.VALUE == "compiled"

    @pytest.mark.asyncio
    async def test_system_exit_in_module_is_contained(self, tmp_path: Path):
        path = tmp_path / "Exits.node.py"
        path.write_text("raise SystemExit(3)\n")

        with pytest.raises(ModuleLoadError):
            await ModuleLoader().load(path)

    @pytest.mark.asyncio
    async def test_timeout(self, tmp_path: Path):
        path = tmp_path / "Slow.node.py"
        path.write_text("import time\ntime.sleep(0.5)\nVALUE = 1\n")
        loader = ModuleLoader(timeout=0.05)

        with pytest.raises(ModuleLoadTimeout):
            await loader.load(path)

        # The abandoned import finishes later and removes itself
        await asyncio.sleep(0.8)
        resolved = path.resolve()
        assert len(loader.cache) == 0
        assert loader.cache.module_name(resolved, 1) not in sys.modules

    @pytest.mark.asyncio
    async def test_concurrent_loads_restore_path(self, tmp_path: Path):
        deps = tmp_path / "site-packages"
        deps.mkdir()
        paths = []
        for i in range(5):
            path = tmp_path / f"N{i}.node.py"
            path.write_text(f"import time\ntime.sleep(0.01)\nVALUE = {i}\n")
            paths.append(path)
        loader = ModuleLoader()

        modules = await asyncio.gather(*(loader.load(p, [deps]) for p in paths))

        assert [m.VALUE for m in modules] == [0, 1, 2, 3, 4]
        assert str(deps) not in sys.path
        assert loader.paths.active == {}
        loader.cache.clear()

    @pytest.mark.asyncio
    async def test_sibling_helper_importable(self, tmp_path: Path):
        nodes = tmp_path / "nodes"
        nodes.mkdir()
        (nodes / "node_helpers.py").write_text("DISPLAY = 'From helper'\n")
        path = nodes / "S.node.py"
        path.write_text("from node_helpers import DISPLAY\nVALUE = DISPLAY\n")

        module = await ModuleLoader().load(path)

        assert module.VALUE == "From helper"
        assert "node_helpers" not in sys.modules
        assert str(nodes) not in sys.path

    @pytest.mark.asyncio
    async def test_same_named_helpers_stay_separate(self, tmp_path: Path):
        paths = []
        for pack in ("pack_a", "pack_b"):
            nodes = tmp_path / pack / "nodes"
            nodes.mkdir(parents=True)
            (nodes / "node_helpers.py").write_text(f"DISPLAY = {pack!r}\n")
            path = nodes / "S.node.py"
            path.write_text("from node_helpers import DISPLAY\nVALUE = DISPLAY\n")
            paths.append(path)
        loader = ModuleLoader()

        first = await loader.load(paths[0])
        second = await loader.load(paths[1])

        assert (first.VALUE, second.VALUE) == ("pack_a", "pack_b")
        loader.cache.clear()

    @pytest.mark.asyncio
    async def test_dependencies_not_evicted(self, tmp_path: Path):
        deps = tmp_path / "site-packages"
        deps.mkdir()
        (deps / "loader_test_kept_dep.py").write_text("NAME = 'dep'\n")
        path = tmp_path / "UsesDep.node.py"
        path.write_text("import loader_test_kept_dep\n")

        await ModuleLoader().load(path, [deps])

        assert "loader_test_kept_dep" in sys.modules
        sys.modules.pop("loader_test_kept_dep", None)


def test_evict_local_modules(tmp_path: Path):
    local = type(sys)("loader_test_local")
    local.__file__ = str(tmp_path / "loader_test_local.py")
    node = type(sys)("_node_extractor_plugin_abc_1")
    node.__file__ = str(tmp_path / "N.node.py")
    sys.modules["loader_test_local"] = local
    sys.modules[node.__name__] = node
    try:
        evicted = evict_local_modules(tmp_path, keep=[])

        assert evicted == ["loader_test_local"]
        assert node.__name__ in sys.modules
    finally:
        sys.modules.pop("loader_test_local", None)
        sys.modules.pop(node.__name__, None)


LOAD_SCRIPT = textwrap.dedent(
    """
    import asyncio
    import sys
    from pathlib import Path

    from node_extractor.errors import ModuleLoadTimeout
    from node_extractor.plugins.loader import ModuleLoader


    async def main():
        try:
            await ModuleLoader(timeout=0.2).load(Path(sys.argv[1]))
        except ModuleLoadTimeout as e:
            print(f"timed out: {e}")


    asyncio.run(main())
    """
)


def test_hung_import_does_not_block_exit(tmp_path: Path):
    """A module that never finishes importing must not keep the process alive."""
    module = tmp_path / "Hang.node.py"
    module.write_text("import time\ntime.sleep(30)\n")
    script = tmp_path / "load_hanging.py"
    script.write_text(LOAD_SCRIPT)
    env = dict(os.environ, PYTHONPATH=os.pathsep.join(p for p in sys.path if p))

    started = time.monotonic()
    result = subprocess.run(
        [sys.executable, str(script), str(module)],
        capture_output=True,
        text=True,
        timeout=25,
        env=env,
    )
    elapsed = time.monotonic() - started

    assert result.returncode == 0, result.stderr
    assert "timed out" in result.stdout
    assert elapsed < 10
