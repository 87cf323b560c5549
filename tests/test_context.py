"""Tests for the cancellation and deadline context."""

import time

import pytest

from ds_storage.core.context import Context, ensure_context
from ds_storage.core.exceptions import OperationCancelledError


class TestContext:
    """Test cancellation propagation and deadlines."""

    def test_background_is_never_done(self):
        ctx = Context.background()

        assert ctx.done() is False
        assert ctx.deadline is None
        assert ctx.remaining() is None
        ctx.check("get", "a.txt")

    def test_cancel_propagates_to_children(self):
        parent = Context.background().with_cancel()
        child = parent.with_timeout(60)

        parent.cancel()

        assert parent.cancelled is True
        assert child.cancelled is True
        assert child.done() is True

    def test_cancel_does_not_propagate_to_parent(self):
        parent = Context.background()
        child = parent.with_cancel()

        child.cancel()

        assert child.done() is True
        assert parent.done() is False

    def test_zero_timeout_is_expired(self):
        ctx = Context.background().with_timeout(0)

        assert ctx.expired is True
        assert ctx.remaining() == 0.0

        with pytest.raises(OperationCancelledError, match="deadline exceeded"):
            ctx.check("put", "a/b.txt")

    def test_child_inherits_earlier_parent_deadline(self):
        parent = Context.background().with_timeout(1)
        child = parent.with_timeout(3600)

        assert child.deadline == parent.deadline
        assert child.remaining() <= 1

    def test_deadline_in_future(self):
        ctx = Context.background().with_timeout(3600)

        assert ctx.deadline > time.monotonic()
        assert ctx.done() is False

    def test_check_message_names_operation_and_path(self):
        ctx = Context.background().with_cancel()
        ctx.cancel()

        with pytest.raises(OperationCancelledError) as exc_info:
            ctx.check("delete", "reports/a.csv")

        assert "delete" in str(exc_info.value)
        assert "reports/a.csv" in str(exc_info.value)
        assert "context cancelled" in str(exc_info.value)

    def test_ensure_context(self):
        ctx = Context.background()

        assert ensure_context(ctx) is ctx
        assert isinstance(ensure_context(None), Context)
