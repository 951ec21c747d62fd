"""Asynchronous module loading and the "all modules loaded" barrier."""

import importlib
import logging
import sys
import threading
from collections import deque
from typing import Any, Callable, Deque, Dict, Optional, Tuple

from .errors import BarrierError
from .events import ChangeNotifier, Operation
from .module_system import Hook, ModuleHandle, ModuleRecord, ModuleRegistry

logger = logging.getLogger(__name__)


class DeferredQueue:
    """
    Cooperative scheduler for hosts without an event loop.

    Callbacks queued with ``call_soon`` run when the host calls
    ``run_pending`` (for example once per frame). An asyncio event loop can be
    used in its place since it exposes the same ``call_soon`` method.
    """

    def __init__(self):
        self._queue: Deque[Tuple[Callable, tuple]] = deque()

    def call_soon(self, callback: Callable, *args):
        self._queue.append((callback, args))

    def run_pending(self) -> int:
        """
        Run queued callbacks until the queue is empty.

        Callbacks scheduled while draining run in the same pass.

        Returns:
            Number of callbacks executed
        """
        count = 0
        while self._queue:
            callback, args = self._queue.popleft()
            callback(*args)
            count += 1
        return count

    def __len__(self) -> int:
        return len(self._queue)


class ImportResolver:
    """Resolves module keys as dotted Python import paths."""

    def __init__(self, package: Optional[str] = None):
        """
        Args:
            package: Optional package prefix prepended to every key
        """
        self.package = package

    def module_path(self, key: str) -> str:
        path = key.replace("/", ".")
        if self.package:
            path = f"{self.package}.{path}"
        return path

    def resolve(self, key: str) -> Any:
        return importlib.import_module(self.module_path(key))

    def discard(self, key: str):
        """Forget the imported module so the next resolve re-executes its source."""
        sys.modules.pop(self.module_path(key), None)
        importlib.invalidate_caches()


class MappingResolver:
    """Resolves module keys through registered zero-argument factories."""

    def __init__(self, factories: Optional[Dict[str, Callable[[], Any]]] = None):
        self._factories: Dict[str, Callable[[], Any]] = dict(factories or {})

    def register(self, key: str, factory: Callable[[], Any]):
        self._factories[key] = factory

    def resolve(self, key: str) -> Any:
        factory = self._factories.get(key)
        if factory is None:
            raise ModuleNotFoundError(f"No factory registered for module {key!r}")
        return factory()

    def discard(self, key: str):
        pass


class ModuleLoader:
    """Requests module implementations and tracks which are still pending."""

    def __init__(
        self,
        registry: ModuleRegistry,
        notifier: ChangeNotifier,
        resolver=None,
        scheduler=None,
        invoke_hook: Optional[Callable[[ModuleRecord, str], Any]] = None,
        lock=None,
    ):
        """
        Args:
            registry: Registry the loader registers records in
            notifier: Receives a "load" event for each request
            resolver: Object with resolve(key)/discard(key); defaults to ImportResolver
            scheduler: Object with call_soon(callback, *args); defaults to a DeferredQueue
            invoke_hook: Callable used to run hooks (lets the runtime apply its error policy)
            lock: Re-entrant lock shared with the runtime
        """
        self.registry = registry
        self.notifier = notifier
        self.resolver = resolver or ImportResolver()
        self.scheduler = scheduler if scheduler is not None else DeferredQueue()
        self._invoke_hook = invoke_hook or (lambda record, hook: record.handle.call(hook))
        self._lock = lock or threading.RLock()
        self._barrier: Optional[Callable[[], Any]] = None

    def request_load(
        self,
        key: str,
        context: Any = None,
        on_resolved: Optional[Callable[[ModuleRecord], Any]] = None,
    ):
        """
        Register ``key`` as pending and schedule its resolution.

        Never blocks: the implementation is resolved by a deferred callback.

        Args:
            key: Module key
            context: Grouping token for the record
            on_resolved: Called with the record after on_load has fired
        """
        with self._lock:
            previous = self.registry.get(key)
            handle = previous.handle if previous else None
            self.registry.register(key, context, handle=handle)
            record = self.registry.get(key)
            if previous is not None:
                record.load_count = previous.load_count

            logger.info(f"Requested load of module {key} (context={context!r})")
            self.notifier.emit(Operation.LOAD, key)
            self.scheduler.call_soon(self._resolve, record, on_resolved)

    def request_load_and_call_when_loaded(self, key: str, context: Any, callback: Callable[[], Any]):
        """Request a load and register the "all loaded" callback in one step."""
        self.request_load(key, context)
        self.when_all_loaded(callback)

    def _resolve(self, record: ModuleRecord, on_resolved):
        with self._lock:
            if self.registry.get(record.key) is not record:
                logger.debug(f"Discarding superseded load of module {record.key}")
                return

            try:
                implementation = self.resolver.resolve(record.key)
            except Exception as e:
                record.pending = False
                record.error = e
                logger.exception(f"Failed to load module {record.key}: {e}")
                self._check_barrier()
                return

            if record.handle is None:
                record.handle = ModuleHandle(record.key, implementation)
            else:
                record.handle.swap(implementation)
            record.pending = False
            record.error = None
            record.load_count += 1
            logger.info(f"Loaded module {record.key}")

            try:
                self._invoke_hook(record, Hook.ON_LOAD.value)
                if on_resolved is not None:
                    on_resolved(record)
            finally:
                # The record is no longer pending even when a hook raised
                self._check_barrier()

    def when_all_loaded(self, callback: Callable[[], Any]):
        """
        Run ``callback`` once no module is pending.

        Fires immediately when nothing is pending.

        Raises:
            BarrierError: If another callback is still outstanding
        """
        with self._lock:
            if self._barrier is not None:
                raise BarrierError("An 'all modules loaded' callback is already outstanding")
            self._barrier = callback
            self._check_barrier()

    @property
    def barrier_outstanding(self) -> bool:
        return self._barrier is not None

    def pending_keys(self):
        return self.registry.pending_keys()

    def _check_barrier(self):
        if self._barrier is None or self.registry.pending_keys():
            return
        callback = self._barrier
        self._barrier = None
        logger.debug("All modules loaded, running barrier callback")
        callback()
