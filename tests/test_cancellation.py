"""Tests for CancelToken."""

from __future__ import annotations

import pytest

from modelrepo.cancellation import CancelToken
from modelrepo.registry.errors import OperationCancelledError


class TestCancelToken:
    """CancelToken state transitions."""

    def test_fresh_token_passes(self) -> None:
        """A new token neither cancels nor expires."""
        token = CancelToken()
        assert not token.cancelled
        token.check()

    def test_cancel(self) -> None:
        """cancel() makes check() raise."""
        token = CancelToken()
        token.cancel()
        assert token.cancelled
        with pytest.raises(OperationCancelledError, match="cancelled"):
            token.check()

    def test_deadline_in_future(self) -> None:
        """A distant deadline does not fire."""
        token = CancelToken(deadline_s=3600)
        assert not token.expired
        token.check()

    def test_deadline_passed(self) -> None:
        """A zero deadline has already expired."""
        token = CancelToken(deadline_s=0)
        assert token.expired
        with pytest.raises(OperationCancelledError, match="deadline"):
            token.check()

    def test_negative_deadline_rejected(self) -> None:
        """Negative deadlines are a programming error."""
        with pytest.raises(ValueError, match="deadline_s"):
            CancelToken(deadline_s=-1)
