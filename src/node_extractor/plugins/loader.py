"""Node module loading.

Node modules are imported from arbitrary file paths inside staged packs.
Three pieces of process-wide state are involved and each is managed here:

1. ``sys.path`` - the module's own directory and the dependency
   directories are added through a shared, reference-counted
   :class:`SearchPath` so concurrent loads never remove an entry a
   sibling load still needs.
2. ``sys.modules`` - every load gets a fresh module name from a per-run
   :class:`ModuleCache` keyed by path and load generation. Helper modules
   imported from the node's own directory are evicted once the load ends,
   so packs shipping a same-named helper never share it.
3. The import itself - runs in a daemon thread, bounded by a timeout.
   A load that finishes after its timeout fired evicts itself, and one
   that never finishes does not keep the process alive.
"""

from __future__ import annotations

import asyncio
import hashlib
import importlib
import importlib.util
import logging
import sys
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
from types import ModuleType

from node_extractor.errors import ModuleLoadError, ModuleLoadTimeout

logger = logging.getLogger(__name__)

DEFAULT_LOAD_TIMEOUT = 10.0
MODULE_PREFIX = "_node_extractor_plugin"


class SearchPath:
    """Reference-counted additions to ``sys.path``.

    An entry is inserted by its first user and removed by its last one.
    Entries that were already on ``sys.path`` are left alone.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._users: dict[str, int] = {}

    @property
    def active(self) -> dict[str, int]:
        """Entries currently owned, with their user counts."""
        with self._lock:
            return dict(self._users)

    @contextmanager
    def prepended(self, *directories: Path) -> Iterator[None]:
        """Put ``directories`` at the front of ``sys.path`` for the block."""
        acquired: list[str] = []
        with self._lock:
            for entry in reversed([str(d) for d in directories]):
                if entry in self._users:
                    self._users[entry] += 1
                elif entry in sys.path:
                    continue
                else:
                    sys.path.insert(0, entry)
                    self._users[entry] = 1
                acquired.append(entry)
            if acquired:
                importlib.invalidate_caches()
        try:
            yield
        finally:
            with self._lock:
                for entry in acquired:
                    self._users[entry] -= 1
                    if self._users[entry] == 0:
                        del self._users[entry]
                        if entry in sys.path:
                            sys.path.remove(entry)




search_path = SearchPath()


class ModuleCache:
    """Per-run record of loaded node modules.

    Each load of a path starts a new generation; the previous module for
    that path is evicted first, so repeated loads always execute the file
    again. Only the current generation may be committed.
    """

    def __init__(self, prefix: str = MODULE_PREFIX) -> None:
        self.prefix = prefix
        self._lock = threading.Lock()
        self._generations: dict[Path, int] = {}
        self._modules: dict[Path, ModuleType] = {}

    def _evict(self, path: Path) -> None:
        module = self._modules.pop(path, None)
        if module is not None:
            sys.modules.pop(module.__name__, None)

    def module_name(self, path: Path, generation: int) -> str:
        digest = hashlib.sha1(str(path).encode("utf-8")).hexdigest()[:12]
        return f"{self.prefix}_{digest}_{generation}"

    def begin(self, path: Path) -> tuple[str, int]:
        """Start a new load of ``path``; returns its module name and generation."""
        with self._lock:
            self._evict(path)
            generation = self._generations.get(path, 0) + 1
            self._generations[path] = generation
            return self.module_name(path, generation), generation

    def commit(self, path: Path, generation: int, module: ModuleType) -> bool:
        """Record a finished load. Stale generations are discarded."""
        with self._lock:
            if self._generations.get(path) != generation:
                sys.modules.pop(module.__name__, None)
                return False
            self._modules[path] = module
            return True

    def abandon(self, path: Path, generation: int) -> None:
        """Invalidate an in-flight load so a late finish is thrown away."""
        with self._lock:
            if self._generations.get(path) == generation:
                self._generations[path] = generation + 1
            sys.modules.pop(self.module_name(path, generation), None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._modules)

    def clear(self) -> None:
        """Evict every module loaded during the run."""
        with self._lock:
            for path in list(self._modules):
                self._evict(path)
            self._generations.clear()


def evict_local_modules(
    directory: Path, keep: list[Path], skip_prefix: str = MODULE_PREFIX
) -> list[str]:
    """Drop modules imported from files under ``directory``.

    Left in place: node modules (named with ``skip_prefix``), modules under
    any ``keep`` directory and modules still being initialized by another
    thread.

    Returns:
        Names of the evicted modules
    """
    evicted = []
    for name, module in list(sys.modules.items()):
        if name.startswith(skip_prefix):
            continue
        filename = getattr(module, "__file__", None)
        if not filename:
            continue
        spec = getattr(module, "__spec__", None)
        if getattr(spec, "_initializing", False):
            continue
        location = Path(filename)
        if not location.is_relative_to(directory):
            continue
        if any(location.is_relative_to(kept) for kept in keep):
            continue
        sys.modules.pop(name, None)
        evicted.append(name)
    return evicted


def run_in_daemon_thread(
    func: Callable[..., ModuleType], *args, name: str | None = None
) -> asyncio.Future:
    """Run ``func`` in a daemon thread and expose its outcome as a future.

    Unlike the default executor, nothing waits for the thread at loop or
    interpreter shutdown. An outcome arriving after the future was
    cancelled, or after the loop closed, is dropped.
    """
    loop = asyncio.get_running_loop()
    future = loop.create_future()

    def settle(result: ModuleType | None, error: Exception | None) -> None:
        if future.done():
            return
        if error is not None:
            future.set_exception(error)
        else:
            future.set_result(result)

    def target() -> None:
        try:
            result, error = func(*args), None
        except Exception as e:
            result, error = None, e
        try:
            loop.call_soon_threadsafe(settle, result, error)
        except RuntimeError:
            # Event loop already closed
            pass

    threading.Thread(target=target, name=name, daemon=True).start()
    return future


class ModuleLoader:
    """Imports node modules from file paths with a timeout."""

    def __init__(
        self,
        cache: ModuleCache | None = None,
        timeout: float = DEFAULT_LOAD_TIMEOUT,
        paths: SearchPath | None = None,
    ) -> None:
        self.cache = cache if cache is not None else ModuleCache()
        self.timeout = timeout
        self.paths = paths if paths is not None else search_path

    def _import(
        self, path: Path, name: str, generation: int, search_dirs: list[Path]
    ) -> ModuleType:
        with self.paths.prepended(path.parent, *search_dirs):
            spec = importlib.util.spec_from_file_location(name, path)
            if spec is None or spec.loader is None:
                raise ModuleLoadError(f"Cannot create module spec for {path}")

            module = importlib.util.module_from_spec(spec)
            sys.modules[name] = module
            try:
                spec.loader.exec_module(module)
            except (Exception, SystemExit) as e:
                sys.modules.pop(name, None)
                raise ModuleLoadError(f"Import of {path.name} failed: {e!r}") from e
            finally:
                evicted = evict_local_modules(
                    path.parent, keep=search_dirs, skip_prefix=self.cache.prefix
                )
                if evicted:
                    logger.debug("Evicted helper modules of %s: %s", path.name, evicted)

        if not self.cache.commit(path, generation, module):
            raise ModuleLoadTimeout(f"Import of {path.name} finished after its timeout")
        return module

    async def load(self, path: Path, search_dirs: list[Path] | None = None) -> ModuleType:
        """
        Import a module file fresh.

        The module's own directory is importable during the load, so it
        can use helper modules shipped next to it.

        Args:
            path: Module file (.py or .pyc)
            search_dirs: Directories prepended to ``sys.path`` during the import

        Returns:
            The executed module

        Raises:
            ModuleLoadTimeout: Import did not finish within ``timeout``
            ModuleLoadError: Import raised
        """
        path = path.resolve()
        name, generation = self.cache.begin(path)
        dirs = [Path(d).resolve() for d in search_dirs or []]

        try:
            return await asyncio.wait_for(
                run_in_daemon_thread(
                    self._import, path, name, generation, dirs, name=f"load-{path.name}"
                ),
                timeout=self.timeout,
            )
        except TimeoutError:
            self.cache.abandon(path, generation)
            raise ModuleLoadTimeout(
                f"Import of {path.name} timed out after {self.timeout:g}s"
            ) from None
