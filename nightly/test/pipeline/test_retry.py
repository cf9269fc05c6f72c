from __future__ import annotations

from collections.abc import Callable

import pytest

from nightly.core.config import RetryConfig
from nightly.core.result import Err, Ok, Result
from nightly.pipeline import retry as retry_mod
from nightly.pipeline.retry import (
    RetryPolicy,
    is_transient_text,
    retry_transient,
)


def _scripted(*results: Result[str, str]) -> tuple[list[int], Callable[[], Result[str, str]]]:
    calls: list[int] = []
    queue = list(results)

    def operation() -> Result[str, str]:
        calls.append(1)
        return queue.pop(0)

    return calls, operation


@pytest.mark.parametrize(
    "text",
    [
        "HTTP 503 Service Unavailable",
        "fatal: unable to access: Could not resolve host: github.com",
        "error: RPC failed; curl 56 Connection reset by peer",
        "Command timed out after 60.0s",
    ],
)
def test_transient_texts(text: str) -> None:
    assert is_transient_text(text)


@pytest.mark.parametrize(
    "text",
    [
        "HTTP 404 Not Found",
        "remote: Permission to owner/repo.git denied",
        " ! [rejected] nightly -> nightly (stale info)",
    ],
)
def test_permanent_texts(text: str) -> None:
    assert not is_transient_text(text)


def test_policy_from_config_clamps_attempts() -> None:
    assert RetryPolicy.from_config(RetryConfig(attempts=0)).attempts == 1


def test_retries_transient_until_success(monkeypatch: pytest.MonkeyPatch) -> None:
    delays: list[float] = []
    monkeypatch.setattr(retry_mod, "sleep", delays.append)

    calls, operation = _scripted(Err("timeout"), Err("timeout"), Ok("done"))
    result = retry_transient(
        operation,
        policy=RetryPolicy(attempts=3, delay_seconds=2.0),
        is_transient=is_transient_text,
    )
    assert result == Ok("done")
    assert len(calls) == 3
    assert delays == [2.0, 4.0]


def test_gives_up_after_attempts() -> None:
    calls, operation = _scripted(Err("timeout"), Err("timeout"), Err("timeout"))
    result = retry_transient(
        operation,
        policy=RetryPolicy(attempts=2, delay_seconds=0.0),
        is_transient=is_transient_text,
    )
    assert result == Err("timeout")
    assert len(calls) == 2


def test_permanent_error_is_not_retried() -> None:
    calls, operation = _scripted(Err("HTTP 404 Not Found"), Ok("never"))
    result = retry_transient(
        operation,
        policy=RetryPolicy(attempts=3, delay_seconds=0.0),
        is_transient=is_transient_text,
    )
    assert isinstance(result, Err)
    assert len(calls) == 1
