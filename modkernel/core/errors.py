"""Exceptions raised by the module runtime."""


class ModkernelError(Exception):
    """Base class for runtime errors."""


class UnknownModuleError(ModkernelError, KeyError):
    """Raised when an operation addresses a key (or handle) with no record."""

    def __init__(self, key):
        self.key = key
        super().__init__(key)

    def __str__(self):
        return f"No module registered for {self.key!r}"


class BarrierError(ModkernelError, RuntimeError):
    """Raised when a second "all loaded" callback is registered while one is outstanding."""


class HookError(ModkernelError):
    """A module hook raised while the runtime was configured to fail on error."""

    def __init__(self, key: str, hook: str):
        self.key = key
        self.hook = hook
        super().__init__(f"Hook {hook!r} of module {key!r} failed")
