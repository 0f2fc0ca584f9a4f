"""Tests for the reconstruction hook contract."""

from __future__ import annotations

import pytest

from statecompat import OnRestored, Persistable, invoke_restore_hook
from tests.helpers import Demo, FailingHook, PlainDemo, Point


class TestInvocation:
    """Test when and how often the hook runs."""

    def test_not_called_on_construction(self):
        demo = Demo(1, "fresh")

        assert demo.computed is None
        assert not hasattr(demo, "hook_calls")

    def test_called_once_per_restore(self, codec, demo):
        copy = Demo()
        codec.restore(copy, codec.snapshot(demo))

        assert copy.hook_calls == 1

    def test_called_again_on_second_restore(self, codec, demo):
        copy = Demo()
        codec.restore(copy, codec.snapshot(demo))
        codec.restore(copy, {"name": "renamed"})

        assert copy.hook_calls == 2
        assert copy.computed == "RENAMED"

    def test_called_once_for_legacy_completion(self, codec):
        target = Demo(1, "legacy")
        codec.complete_restore(target)

        assert target.hook_calls == 1

    def test_sees_all_persisted_fields(self, codec):
        """Every written field is in place when the hook runs."""
        seen = {}

        class Recorder:
            a: int
            _b: int
            __c: int

            def on_restored(self):
                seen.update(vars(self))

        codec.restore(Recorder(), {"a": 1, "b": 2, "c": 3})

        assert seen == {"a": 1, "_b": 2, "_Recorder__c": 3}

    def test_exception_propagates(self, codec):
        """The codec does not swallow hook failures."""
        with pytest.raises(ValueError, match="cannot rebuild index"):
            codec.restore(FailingHook(), {"value": 1})

    def test_fields_written_before_failing_hook(self, codec):
        target = FailingHook()
        with pytest.raises(ValueError):
            codec.restore(target, {"value": 1})

        assert target.value == 1


class TestCapability:
    """Test types with and without the hook."""

    def test_type_without_hook(self, codec):
        """Restoring a type with no on_restored is a plain field write."""
        target = Point()

        codec.restore(target, {"x": 3})

        assert target.x == 3
        assert invoke_restore_hook(target) is False

    def test_invoke_reports_hook_ran(self):
        assert invoke_restore_hook(Demo(1, "a")) is True

    def test_non_callable_attribute_is_not_a_hook(self):
        class Odd:
            on_restored = "not a method"

        assert invoke_restore_hook(Odd()) is False

    def test_protocol_check(self):
        assert isinstance(Demo(), OnRestored)
        assert isinstance(PlainDemo(), OnRestored)
        assert not isinstance(Point(), OnRestored)

    def test_persistable_default_is_noop(self, codec):
        class Quiet(Persistable):
            value: int

        target = Quiet()
        codec.restore(target, {"value": 5})

        assert target.value == 5
        assert vars(target) == {"value": 5}


class TestPersistableMixin:
    """Test the Persistable convenience methods."""

    def test_snapshot_state(self, demo):
        assert demo.snapshot_state() == {
            "id": 123,
            "name": "freemius",
            "flags": {"beta": True},
            "computed": None,
        }

    def test_from_payload_skips_init(self):
        """from_payload builds without __init__, so unlisted fields stay unset."""
        copy = Demo.from_payload({"id": 5, "name": "partial"})

        assert copy.id == 5
        assert copy.computed == "PARTIAL"
        assert not hasattr(copy, "_Demo__flags")
        assert copy.hook_calls == 1

    def test_restore_state(self, demo):
        target = Demo()
        target.restore_state(demo.snapshot_state())

        assert target.flags == {"beta": True}
        assert target.computed == "FREEMIUS"
