"""Module runtime: lifecycle transitions, context operations and broadcasts."""

import functools
import logging
import threading
from typing import Any, Callable, List, Optional

from .errors import HookError, UnknownModuleError
from .events import ChangeNotifier, Listener, Operation
from .loader import ImportResolver, ModuleLoader
from .module_system import Hook, ModuleRecord, ModuleRegistry
from .results import Merged, merge_result

logger = logging.getLogger(__name__)


def _serialized(method):
    """Run the method under the runtime's re-entrant lock."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            return method(self, *args, **kwargs)

    return wrapper


def _hook_name(hook) -> str:
    return getattr(hook, "value", hook)


class ModuleRuntime:
    """
    Orchestrates the lifecycle of registered modules.

    Owns a registry, a loader and a change notifier. Nothing is shared
    between runtime instances, so several runtimes can live side by side.

    Transitions are guarded by the ``can_*`` predicates: calling ``enable``,
    ``disable`` or ``reload`` when the guard fails is a silent no-op.
    """

    def __init__(
        self,
        resolver=None,
        scheduler=None,
        fail_on_error: bool = False,
        registry: Optional[ModuleRegistry] = None,
        notifier: Optional[ChangeNotifier] = None,
    ):
        """
        Args:
            resolver: Produces module implementations (defaults to ImportResolver)
            scheduler: Defers load resolution (defaults to a DeferredQueue drained by pump())
            fail_on_error: Raise HookError when a hook fails instead of logging and continuing
            registry: Registry to use, a fresh one by default
            notifier: Notifier to use, a fresh one by default
        """
        self._lock = threading.RLock()
        self.fail_on_error = fail_on_error
        self.registry = registry if registry is not None else ModuleRegistry()
        self.notifier = notifier if notifier is not None else ChangeNotifier()
        self.loader = ModuleLoader(
            self.registry,
            self.notifier,
            resolver=resolver,
            scheduler=scheduler,
            invoke_hook=self._invoke,
            lock=self._lock,
        )

    @classmethod
    def from_config(cls, resolver=None, scheduler=None) -> "ModuleRuntime":
        """Build a runtime from the ``runtime`` section of the loaded configuration."""
        from modkernel.config import get

        if resolver is None:
            resolver = ImportResolver(get("runtime.package"))
        return cls(
            resolver=resolver,
            scheduler=scheduler,
            fail_on_error=bool(get("runtime.fail_on_error", False)),
        )

    # --- Change notification ------------------------------------------------

    def set_listener(self, callback: Optional[Listener]):
        """Replace all change listeners with ``callback``."""
        self.notifier.set_listener(callback)

    def add_listener(self, callback: Listener):
        self.notifier.add_listener(callback)

    def remove_listener(self, callback: Listener):
        self.notifier.remove_listener(callback)

    # --- Loading ------------------------------------------------------------

    def request_load(self, key: str, context: Any = None):
        """Register ``key`` under ``context`` and schedule its load."""
        self.loader.request_load(key, context)

    def request_load_and_call_when_loaded(self, key: str, context: Any, callback: Callable[[], Any]):
        self.loader.request_load_and_call_when_loaded(key, context, callback)

    def when_all_loaded(self, callback: Callable[[], Any]):
        """Run ``callback`` once nothing is pending. See ModuleLoader.when_all_loaded."""
        self.loader.when_all_loaded(callback)

    def pump(self) -> int:
        """
        Drain the scheduler if it is a cooperative queue.

        Returns:
            Number of deferred callbacks executed (0 for external event loops)
        """
        run_pending = getattr(self.loader.scheduler, "run_pending", None)
        if run_pending is None:
            return 0
        return run_pending()

    # --- Lookup -------------------------------------------------------------

    def module_names(self) -> List[str]:
        return self.registry.keys()

    def module_state(self, key: str) -> ModuleRecord:
        """
        Get the record for ``key``.

        Raises:
            UnknownModuleError: If no module is registered under ``key``
        """
        record = self.registry.get(key)
        if record is None:
            raise UnknownModuleError(key)
        return record

    # --- Hook invocation ----------------------------------------------------

    def _invoke(self, record: ModuleRecord, hook, *args) -> Any:
        name = _hook_name(hook)
        if not record.has(name):
            return None
        try:
            return record.handle.call(name, *args)
        except Exception as e:
            if self.fail_on_error:
                raise HookError(record.key, name) from e
            logger.exception(f"Error in hook {name} of module {record.key}: {e}")
            return None

    @_serialized
    def call(self, key: str, hook, *args) -> Any:
        """
        Invoke one hook on one module.

        Returns:
            The hook's result, or None when the module lacks the hook

        Raises:
            UnknownModuleError: If no module is registered under ``key``
        """
        return self._invoke(self.module_state(key), hook, *args)

    @_serialized
    def call_all(self, hook, *args):
        """Invoke ``hook`` on every loaded module, enabled or not."""
        for record in self.registry.records():
            if record.loaded and not record.pending:
                self._invoke(record, hook, *args)

    # --- Lifecycle transitions ----------------------------------------------

    def can_enable(self, key: str) -> bool:
        record = self.registry.get(key)
        return (
            record is not None
            and not record.enabled
            and not record.pending
            and record.handle is not None
        )

    @_serialized
    def enable(self, key: str):
        if not self.can_enable(key):
            logger.debug(f"Not enabling module {key}")
            return
        record = self.registry.get(key)
        record.enabled = True
        record.reenable = False
        self._invoke(record, Hook.ON_ENABLE)
        logger.info(f"Enabled module {key}")
        self.notifier.emit(Operation.ENABLE, key)

    def can_disable(self, key: str) -> bool:
        record = self.registry.get(key)
        if record is None or record.handle is None or not record.enabled:
            return False
        # A module enabled through a hook it has no teardown for stays enabled
        return record.enable_capable == record.disable_capable

    @_serialized
    def disable(self, key: str):
        if not self.can_disable(key):
            logger.debug(f"Not disabling module {key}")
            return
        record = self.registry.get(key)
        record.enabled = False
        record.reenable = False
        self._invoke(record, Hook.ON_DISABLE)
        logger.info(f"Disabled module {key}")
        self.notifier.emit(Operation.DISABLE, key)

    @_serialized
    def enable_all(self):
        for key in self.registry.keys():
            self.enable(key)

    def can_reload(self, key: str) -> bool:
        record = self.registry.get(key)
        if record is None or not record.reload_capable:
            return False
        # An enabled module must go through a full disable before it is swapped
        return not record.enabled or self.can_disable(key)

    @_serialized
    def reload(self, key: str):
        """
        Swap in a freshly loaded implementation of ``key``.

        An enabled module is disabled first and re-enabled once the new
        implementation has run ``on_load`` and ``init``. The record's handle
        is kept, so holders of the handle see the new implementation; direct
        references to the old implementation are not rewired.
        """
        if not self.can_reload(key):
            logger.debug(f"Module {key} cannot be reloaded")
            return
        record = self.registry.get(key)
        # A reload that supersedes one still in flight inherits its intent
        was_enabled = record.enabled or record.reenable
        if record.enabled:
            self.disable(key)

        logger.info(f"Reloading module {key}")
        self.loader.resolver.discard(key)

        def _after_load(new_record: ModuleRecord):
            self._invoke(new_record, Hook.INIT)
            if new_record.reenable:
                self.enable(key)

        self.loader.request_load(key, record.context, on_resolved=_after_load)
        self.registry.get(key).reenable = was_enabled

    # --- Context operations -------------------------------------------------

    @_serialized
    def init_context(self, context: Any):
        """Call ``init`` on every loaded module of ``context``."""
        records = self.registry.records_in(context)
        for record in records:
            self._invoke(record, Hook.INIT)
        logger.info(f"Initialized {len(records)} modules in context {context!r}")

    @_serialized
    def enable_context(self, context: Any):
        for record in self.registry.records_in(context):
            self.enable(record.key)

    @_serialized
    def disable_context(self, context: Any):
        for record in self.registry.records_in(context):
            self.disable(record.key)

    # --- Broadcasts ---------------------------------------------------------

    @_serialized
    def broadcast(self, hook, *args) -> Merged:
        """
        Invoke ``hook`` on every enabled module and merge the results.

        Returns:
            None if no module returned anything, otherwise a concatenated
            list or an overlaid dict (later modules win on key conflicts)
        """
        merged: Merged = None
        for record in self.registry.records():
            if not record.enabled or not record.has(_hook_name(hook)):
                continue
            merged = merge_result(merged, self._invoke(record, hook, *args), record.key)
        return merged

    @_serialized
    def broadcast_with_input(self, producer_hook, consumer_hook):
        """Feed the merged result of ``producer_hook`` to ``consumer_hook`` on enabled modules."""
        payload = self.broadcast(producer_hook)
        for record in self.registry.records():
            if record.enabled:
                self._invoke(record, consumer_hook, payload)

    @_serialized
    def broadcast_to_peers(self, handle: Any, hook, *args) -> Merged:
        """
        Invoke ``hook`` on the loaded modules sharing the context of ``handle``.

        Args:
            handle: A ModuleHandle, or the implementation it wraps

        Raises:
            UnknownModuleError: If no record owns ``handle``
        """
        owner = self.registry.find_by_handle(handle)
        if owner is None:
            raise UnknownModuleError(handle)

        merged: Merged = None
        for record in self.registry.records_in(owner.context):
            if not record.pending and record.has(_hook_name(hook)):
                merged = merge_result(merged, self._invoke(record, hook, *args), record.key)
        return merged
