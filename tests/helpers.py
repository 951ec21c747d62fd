"""Fake module implementations shared by the tests."""

from types import SimpleNamespace

LIFECYCLE_HOOKS = ("on_load", "init", "on_enable", "on_disable", "on_reload")


def make_module(key, calls, hooks=LIFECYCLE_HOOKS, returns=None, **attrs):
    """
    Build a module implementation whose hooks append (key, hook, *args) to ``calls``.

    Args:
        key: Name recorded in the call log
        calls: Shared call log
        hooks: Hook names the module implements
        returns: Mapping of hook name to return value (an exception is raised instead)
    """
    returns = returns or {}

    def _make_hook(hook):
        def _hook(*args):
            calls.append((key, hook) + args)
            result = returns.get(hook)
            if isinstance(result, Exception):
                raise result
            return result
        return _hook

    for hook in hooks:
        attrs[hook] = _make_hook(hook)
    return SimpleNamespace(**attrs)


def assert_invariants(runtime):
    """Enabled modules are always loaded and never pending."""
    for record in runtime.registry.records():
        if record.enabled:
            assert not record.pending, record.key
            assert record.handle is not None, record.key
