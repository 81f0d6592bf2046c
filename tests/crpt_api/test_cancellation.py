# === NAVMAP v1 ===
# {
#   "module": "tests.crpt_api.test_cancellation",
#   "purpose": "Tests for the cancellation primitives that release blocked admission waits.",
#   "sections": [
#     {"id": "tests", "name": "Test Cases", "anchor": "TST", "kind": "tests"}
#   ]
# }
# === /NAVMAP ===

"""Tests for the cancellation primitives that release blocked admission waits."""

from CrptApi.cancellation import (
    CancellationToken,
    CancellationTokenGroup,
)


def test_cancel_runs_callbacks_once() -> None:
    """Callbacks fire on the first cancel only."""

    token = CancellationToken()
    calls = []
    token.add_callback(lambda: calls.append("woke"))

    token.cancel()
    token.cancel()

    assert token.is_cancelled()
    assert calls == ["woke"]


def test_callback_added_after_cancel_runs_immediately() -> None:
    """Registering on a cancelled token invokes the callback in place."""

    token = CancellationToken()
    token.cancel()
    calls = []
    token.add_callback(lambda: calls.append("late"))

    assert calls == ["late"]


def test_removed_callback_is_not_invoked() -> None:
    """remove_callback unregisters; unknown callbacks are ignored."""

    token = CancellationToken()
    calls = []

    def callback() -> None:
        calls.append("x")

    token.add_callback(callback)
    token.remove_callback(callback)
    token.remove_callback(callback)
    token.cancel()

    assert calls == []


def test_failing_callback_does_not_block_others() -> None:
    """One broken callback does not stop the remaining ones."""

    token = CancellationToken()
    calls = []

    def broken() -> None:
        raise RuntimeError("boom")

    token.add_callback(broken)
    token.add_callback(lambda: calls.append("ok"))
    token.cancel()

    assert calls == ["ok"]


def test_reset_clears_cancellation() -> None:
    """reset() returns the token to the uncancelled state."""

    token = CancellationToken()
    token.cancel()
    token.reset()
    assert not token.is_cancelled()


def test_tokens_created_after_cancel_all_are_cancelled() -> None:
    """Tokens created after ``cancel_all`` should start in a cancelled state."""

    group = CancellationTokenGroup()
    first = group.create_token()
    assert not first.is_cancelled()

    group.cancel_all()

    assert first.is_cancelled()
    second = group.create_token()
    assert second.is_cancelled()

    third = CancellationToken()
    group.add_token(third)
    assert third.is_cancelled()


def test_group_membership() -> None:
    """Tokens can be added and removed; any-cancelled reflects members only."""

    group = CancellationTokenGroup()
    token = group.create_token()
    other = CancellationToken()
    group.add_token(other)
    assert len(group) == 2

    group.remove_token(token)
    group.remove_token(token)
    assert len(group) == 1

    token.cancel()
    assert not group.is_any_cancelled()
    other.cancel()
    assert group.is_any_cancelled()
