"""modkernel - module lifecycle orchestration for component-based runtimes."""

from .core import (
    BarrierError,
    ChangeEvent,
    DeferredQueue,
    FrameDriver,
    Hook,
    HookError,
    ImportResolver,
    MappingResolver,
    ModuleHandle,
    ModuleRuntime,
    UnknownModuleError,
)

__version__ = "1.0.0"

__all__ = [
    "BarrierError",
    "ChangeEvent",
    "DeferredQueue",
    "FrameDriver",
    "Hook",
    "HookError",
    "ImportResolver",
    "MappingResolver",
    "ModuleHandle",
    "ModuleRuntime",
    "UnknownModuleError",
]
