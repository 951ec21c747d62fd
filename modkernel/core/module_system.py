"""Module records, handles and the registry that maps keys to them."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterator, List, Optional

logger = logging.getLogger(__name__)


class Hook(str, Enum):
    """Named hooks a module implementation may expose."""

    ON_LOAD = "on_load"
    INIT = "init"
    ON_ENABLE = "on_enable"
    ON_DISABLE = "on_disable"
    ON_RELOAD = "on_reload"

    # Per-frame hooks, only called while the module is enabled
    ON_UPDATE = "on_update"
    BEFORE_RENDER_EARLY = "before_render_early"
    BEFORE_RENDER_LATE = "before_render_late"
    ON_RENDER = "on_render"

    # Application launcher contract
    LAUNCH_APP = "launch_app"
    END_APP = "end_app"
    GET_MODULE_CONFIG = "get_module_config"


HOOK_NAMES = frozenset(hook.value for hook in Hook)


def capabilities_of(implementation: Any) -> FrozenSet[str]:
    """
    Compute the set of hook names an implementation provides.

    An implementation may declare its hooks explicitly with a ``__hooks__``
    iterable of names. Otherwise every callable attribute whose name is a
    known hook counts.

    Args:
        implementation: Loaded module object

    Returns:
        Frozen set of hook names (``Hook`` members compare equal to their names)
    """
    if implementation is None:
        return frozenset()

    declared = getattr(implementation, "__hooks__", None)
    if declared is not None:
        names = {getattr(name, "value", name) for name in declared}
        missing = [name for name in names if not callable(getattr(implementation, name, None))]
        if missing:
            logger.warning(f"Declared hooks not implemented, ignoring: {missing}")
        return frozenset(name for name in names if name not in missing)

    return frozenset(
        hook.value for hook in Hook
        if callable(getattr(implementation, hook.value, None))
    )


class ModuleHandle:
    """
    Stable reference to a module's current implementation.

    One handle exists per registered key and survives reloads: a reload swaps
    the implementation inside the handle, so peers holding the handle see the
    new code. References taken directly to the old implementation still go
    stale.
    """

    __slots__ = ("key", "_implementation", "_capabilities")

    def __init__(self, key: str, implementation: Any):
        self.key = key
        self._implementation = implementation
        self._capabilities = capabilities_of(implementation)

    @property
    def implementation(self) -> Any:
        return self._implementation

    @property
    def capabilities(self) -> FrozenSet[str]:
        return self._capabilities

    def has(self, hook: str) -> bool:
        """
        Check whether the current implementation provides ``hook``.

        Contract hooks are answered from the capability set. Any other name is
        an application-level method (for example one reached by a broadcast)
        and only needs to be a public callable attribute.
        """
        name = str(getattr(hook, "value", hook))
        if name in self._capabilities:
            return True
        if name in HOOK_NAMES or name.startswith("_"):
            return False
        return callable(getattr(self._implementation, name, None))

    def swap(self, implementation: Any):
        """Replace the implementation wholesale and recompute capabilities."""
        self._implementation = implementation
        self._capabilities = capabilities_of(implementation)

    def call(self, hook: str, *args, **kwargs) -> Any:
        """Invoke ``hook`` if present; returns None when it is absent."""
        name = getattr(hook, "value", hook)
        if not self.has(name):
            return None
        return getattr(self._implementation, name)(*args, **kwargs)

    def __getattr__(self, name: str) -> Any:
        # Delegate attribute access so peers can use the handle like the module
        if name.startswith("_"):
            raise AttributeError(name)
        return getattr(self._implementation, name)

    def __repr__(self):
        return f"<ModuleHandle: {self.key} hooks={sorted(self._capabilities)}>"


@dataclass
class ModuleRecord:
    """State of one registered module."""

    key: str
    context: Any = None
    handle: Optional[ModuleHandle] = None
    pending: bool = True
    enabled: bool = False
    # Set while a reload of an enabled module is in flight
    reenable: bool = False
    error: Optional[BaseException] = None
    load_count: int = 0

    @property
    def loaded(self) -> bool:
        return self.handle is not None

    def has(self, hook: str) -> bool:
        return self.handle is not None and self.handle.has(hook)

    @property
    def enable_capable(self) -> bool:
        return self.has(Hook.ON_ENABLE)

    @property
    def disable_capable(self) -> bool:
        return self.has(Hook.ON_DISABLE)

    @property
    def reload_capable(self) -> bool:
        return self.has(Hook.ON_RELOAD)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "context": self.context,
            "pending": self.pending,
            "enabled": self.enabled,
            "loaded": self.loaded,
            "hooks": sorted(self.handle.capabilities) if self.handle else [],
            "error": str(self.error) if self.error else None,
            "load_count": self.load_count,
        }


class ModuleRegistry:
    """Authoritative map from module key to its record."""

    def __init__(self):
        self._records: Dict[str, ModuleRecord] = {}

    def register(self, key: str, context: Any = None, handle: Optional[ModuleHandle] = None):
        """
        Create or overwrite the record for ``key`` in the pending state.

        Args:
            key: Module key
            context: Opaque grouping token
            handle: Handle to carry over (used when a record is re-registered on reload)
        """
        if key in self._records:
            logger.debug(f"Module {key} already registered, replacing record")

        self._records[key] = ModuleRecord(key=key, context=context, handle=handle)

    def get(self, key: str) -> Optional[ModuleRecord]:
        """Get a record by key, or None."""
        return self._records.get(key)

    def keys(self) -> List[str]:
        """All registered keys, in insertion order."""
        return list(self._records.keys())

    def records(self) -> List[ModuleRecord]:
        return list(self._records.values())

    def records_in(self, context: Any) -> List[ModuleRecord]:
        """Records whose context equals ``context``."""
        return [r for r in self._records.values() if r.context == context]

    def find_by_handle(self, handle: Any) -> Optional[ModuleRecord]:
        """Find the record owning ``handle`` (a ModuleHandle or a raw implementation)."""
        for record in self._records.values():
            if record.handle is None:
                continue
            if record.handle is handle or record.handle.implementation is handle:
                return record
        return None

    def pending_keys(self) -> List[str]:
        return [key for key, record in self._records.items() if record.pending]

    def __contains__(self, key: str) -> bool:
        return key in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[ModuleRecord]:
        return iter(self.records())
