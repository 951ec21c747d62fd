"""Tests for single-module enable, disable and reload transitions."""

import pytest

from modkernel.core import HookError, ModuleRuntime, UnknownModuleError

from .helpers import assert_invariants, make_module


class TestEnable:

    def test_enable_fires_hook_then_notification(self, load, runtime, calls, events):
        order = []
        runtime.add_listener(lambda event: order.append(("notify", runtime.registry.get("a").enabled)))
        load("a")
        calls.clear()
        events.clear()

        runtime.enable("a")

        assert runtime.registry.get("a").enabled is True
        assert calls == [("a", "on_enable")]
        assert events == [("enable", "a")]
        # listener observes the state after the transition
        assert order[-1] == ("notify", True)
        assert_invariants(runtime)

    def test_enable_is_idempotent(self, load, runtime, calls, events):
        load("a")
        calls.clear()
        events.clear()

        runtime.enable("a")
        runtime.enable("a")

        assert calls == [("a", "on_enable")]
        assert events == [("enable", "a")]

    def test_enable_before_load_resolves_is_refused(self, load, runtime, calls, events):
        load("a", pump=False)

        assert not runtime.can_enable("a")
        runtime.enable("a")

        assert runtime.registry.get("a").enabled is False
        assert events == [("load", "a")]
        assert_invariants(runtime)

    def test_enable_without_hook_still_transitions(self, load, runtime, calls, events):
        load("a", hooks=("init",))
        runtime.enable("a")

        assert runtime.registry.get("a").enabled is True
        assert events[-1] == ("enable", "a")

    def test_unknown_key_is_a_noop(self, runtime, events):
        assert not runtime.can_enable("ghost")
        assert not runtime.can_disable("ghost")
        assert not runtime.can_reload("ghost")
        runtime.enable("ghost")
        runtime.disable("ghost")
        runtime.reload("ghost")
        assert events == []

    def test_enable_all_ignores_context(self, load, runtime):
        load("a", context="one")
        load("b", context="two")
        runtime.enable_all()
        assert runtime.registry.get("a").enabled
        assert runtime.registry.get("b").enabled


class TestDisable:

    def test_disable_fires_hook_then_notification(self, load, runtime, calls, events):
        load("a")
        runtime.enable("a")
        calls.clear()
        events.clear()

        runtime.disable("a")

        assert runtime.registry.get("a").enabled is False
        assert calls == [("a", "on_disable")]
        assert events == [("disable", "a")]

    def test_disable_requires_enabled(self, load, runtime, calls, events):
        load("a")
        events.clear()
        calls.clear()

        assert not runtime.can_disable("a")
        runtime.disable("a")

        assert calls == []
        assert events == []

    def test_asymmetric_capabilities_block_disable(self, load, runtime, calls, events):
        load("a", hooks=("on_enable",))
        runtime.enable("a")
        calls.clear()
        events.clear()

        assert not runtime.can_disable("a")
        runtime.disable("a")

        assert runtime.registry.get("a").enabled is True
        assert calls == []
        assert events == []

    def test_disable_only_hook_is_also_asymmetric(self, load, runtime):
        load("a", hooks=("on_disable",))
        runtime.enable("a")
        assert not runtime.can_disable("a")

    def test_no_hooks_at_all_can_disable(self, load, runtime, events):
        load("a", hooks=())
        runtime.enable("a")
        runtime.disable("a")
        assert runtime.registry.get("a").enabled is False
        assert events[-1] == ("disable", "a")


class TestReload:

    def test_reload_sequence_for_enabled_module(self, load, runtime, calls, events):
        load("m", context="game")
        runtime.enable("m")
        calls.clear()
        events.clear()

        runtime.reload("m")
        # disable and the new load request happen synchronously
        assert events == [("disable", "m"), ("load", "m")]
        assert runtime.registry.get("m").pending is True
        assert_invariants(runtime)

        runtime.pump()

        assert calls == [
            ("m", "on_disable"),
            ("m", "on_load"),
            ("m", "init"),
            ("m", "on_enable"),
        ]
        assert events == [("disable", "m"), ("load", "m"), ("enable", "m")]
        record = runtime.registry.get("m")
        assert record.enabled is True
        assert record.context == "game"
        assert record.load_count == 2
        assert_invariants(runtime)

    def test_reload_of_disabled_module_stays_disabled(self, load, runtime, calls):
        load("m")
        calls.clear()

        runtime.reload("m")
        runtime.pump()

        assert calls == [("m", "on_load"), ("m", "init")]
        assert runtime.registry.get("m").enabled is False

    def test_reload_requires_on_reload_hook(self, load, runtime, calls, events):
        load("m", hooks=("on_enable", "on_disable"))
        runtime.enable("m")
        calls.clear()
        events.clear()

        assert not runtime.can_reload("m")
        runtime.reload("m")
        runtime.pump()

        assert calls == []
        assert events == []

    def test_back_to_back_reloads_keep_module_enabled(self, load, runtime, calls, events):
        load("m")
        runtime.enable("m")
        calls.clear()
        events.clear()

        runtime.reload("m")
        runtime.reload("m")
        runtime.pump()

        record = runtime.registry.get("m")
        assert record.enabled is True
        assert record.reenable is False
        # the first load is superseded, so on_enable fires exactly once
        assert calls == [("m", "on_disable"), ("m", "on_load"), ("m", "init"), ("m", "on_enable")]
        assert events == [("disable", "m"), ("load", "m"), ("load", "m"), ("enable", "m")]
        assert_invariants(runtime)

    def test_enabled_module_without_teardown_cannot_reload(self, load, runtime, calls, events):
        load("m", hooks=("on_enable", "on_reload"))
        runtime.enable("m")
        calls.clear()
        events.clear()

        assert not runtime.can_reload("m")
        runtime.reload("m")
        runtime.pump()

        assert runtime.registry.get("m").enabled is True
        assert runtime.registry.get("m").load_count == 1
        assert calls == []
        assert events == []

    def test_disabled_module_without_teardown_can_reload(self, load, runtime, calls):
        load("m", hooks=("on_enable", "on_reload", "init"))
        calls.clear()

        assert runtime.can_reload("m")
        runtime.reload("m")
        runtime.pump()

        assert calls == [("m", "init")]
        assert runtime.registry.get("m").enabled is False

    def test_reload_swaps_implementation_behind_stable_handle(self, runtime, resolver, calls):
        versions = iter([1, 2])
        resolver.register("m", lambda: make_module("m", calls, version=next(versions)))
        runtime.request_load("m", "game")
        runtime.pump()
        handle = runtime.registry.get("m").handle
        old_implementation = handle.implementation

        runtime.reload("m")
        runtime.pump()

        assert runtime.registry.get("m").handle is handle
        assert handle.version == 2
        # direct references to the previous implementation are not rewired
        assert old_implementation.version == 1

    def test_failed_reload_keeps_previous_implementation(self, runtime, resolver, calls):
        def _second_load_fails():
            if any(call[1] == "on_load" for call in calls):
                raise ImportError("syntax error in module")
            return make_module("m", calls)

        resolver.register("m", _second_load_fails)
        runtime.request_load("m")
        runtime.pump()
        runtime.enable("m")

        runtime.reload("m")
        runtime.pump()

        record = runtime.registry.get("m")
        assert isinstance(record.error, ImportError)
        assert record.pending is False
        assert record.enabled is False
        assert record.handle is not None
        assert runtime.can_enable("m")


class TestHookErrors:

    def test_failing_hook_is_logged_and_transition_stands(self, load, runtime, events, caplog):
        load("a", returns={"on_enable": RuntimeError("boom")})

        runtime.enable("a")

        assert runtime.registry.get("a").enabled is True
        assert events[-1] == ("enable", "a")
        assert "Error in hook on_enable of module a" in caplog.text

    def test_fail_on_error_raises_hook_error(self, resolver, calls):
        runtime = ModuleRuntime(resolver=resolver, fail_on_error=True)
        resolver.register("a", lambda: make_module("a", calls, returns={"init": ValueError("bad")}))
        runtime.request_load("a", "ctx")
        runtime.pump()

        with pytest.raises(HookError) as exc_info:
            runtime.init_context("ctx")

        assert exc_info.value.key == "a"
        assert exc_info.value.hook == "init"
        assert isinstance(exc_info.value.__cause__, ValueError)


class TestCall:

    def test_call_returns_hook_result(self, load, runtime):
        load("a", returns={"init": {"ready": True}})
        assert runtime.call("a", "init") == {"ready": True}

    def test_call_missing_hook_returns_none(self, load, runtime):
        load("a", hooks=())
        assert runtime.call("a", "init") is None

    def test_call_unknown_module_raises(self, runtime):
        with pytest.raises(UnknownModuleError):
            runtime.call("ghost", "init")
        with pytest.raises(KeyError):
            runtime.module_state("ghost")

    def test_call_all_skips_module_being_reloaded(self, load, runtime, calls):
        load("a")
        load("b")
        runtime.reload("b")
        calls.clear()

        runtime.call_all("init")

        assert calls == [("a", "init")]

    def test_call_all_reaches_disabled_modules(self, load, runtime, calls):
        load("a")
        load("b")
        runtime.enable("a")
        calls.clear()

        runtime.call_all("on_reload")

        assert calls == [("a", "on_reload"), ("b", "on_reload")]
