"""Tests for the part retry policy."""

from __future__ import annotations

import pytest

from boxpublisher.upload.retry import PartAttempts, RetryPolicy


class TestRetryPolicy:
    """Tests for RetryPolicy."""

    def test_defaults(self) -> None:
        """Ten attempts, five seconds apart."""
        policy = RetryPolicy()

        assert policy.max_attempts == 10
        assert policy.delay_s == 5.0

    def test_can_retry_until_max_attempts(self) -> None:
        """Retries are allowed while attempts remain."""
        policy = RetryPolicy(max_attempts=3)

        assert policy.can_retry(1)
        assert policy.can_retry(2)
        assert not policy.can_retry(3)

    def test_single_attempt_never_retries(self) -> None:
        assert not RetryPolicy(max_attempts=1).can_retry(1)

    def test_wait_uses_sleep_fn(self) -> None:
        """wait() delegates to the injected sleep function."""
        sleeps: list[float] = []
        policy = RetryPolicy(delay_s=2.5, sleep_fn=sleeps.append)

        policy.wait()
        policy.wait()

        assert sleeps == [2.5, 2.5]

    def test_zero_delay_skips_sleep(self) -> None:
        sleeps: list[float] = []

        RetryPolicy(delay_s=0, sleep_fn=sleeps.append).wait()

        assert sleeps == []

    @pytest.mark.parametrize(
        ("kwargs", "match"),
        [
            ({"max_attempts": 0}, "max_attempts"),
            ({"delay_s": -1.0}, "delay_s"),
        ],
    )
    def test_invalid(self, kwargs: dict[str, float], match: str) -> None:
        """Invalid settings are rejected."""
        with pytest.raises(ValueError, match=match):
            RetryPolicy(**kwargs)  # type: ignore[arg-type]


class TestPartAttempts:
    """Tests for PartAttempts."""

    def test_tracks_attempts_and_last_error(self) -> None:
        attempts = PartAttempts(part_number=3)
        attempts.record_attempt()
        attempts.record_error(RuntimeError("first"))
        attempts.record_attempt()
        err = RuntimeError("second")
        attempts.record_error(err)

        assert attempts.attempt == 2
        assert attempts.last_error is err
