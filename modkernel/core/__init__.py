"""Core module lifecycle functionality."""

from .errors import BarrierError, HookError, ModkernelError, UnknownModuleError
from .events import ChangeEvent, ChangeLog, ChangeNotifier, Operation
from .frame import FrameDriver
from .loader import DeferredQueue, ImportResolver, MappingResolver, ModuleLoader
from .module_system import Hook, ModuleHandle, ModuleRecord, ModuleRegistry, capabilities_of
from .results import ResultKind, merge_result, merge_results
from .runtime import ModuleRuntime

__all__ = [
    "BarrierError",
    "HookError",
    "ModkernelError",
    "UnknownModuleError",
    "ChangeEvent",
    "ChangeLog",
    "ChangeNotifier",
    "Operation",
    "FrameDriver",
    "DeferredQueue",
    "ImportResolver",
    "MappingResolver",
    "ModuleLoader",
    "Hook",
    "ModuleHandle",
    "ModuleRecord",
    "ModuleRegistry",
    "capabilities_of",
    "ResultKind",
    "merge_result",
    "merge_results",
    "ModuleRuntime",
]
