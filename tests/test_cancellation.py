"""
Cancellation tokens, deadlines, SIGINT routing and cancelled validations.
"""

import signal
import threading
import time

import pytest

from rdfshape.cancellation import (
    CancellationToken,
    OperationCancelledException,
    cancel_on_sigint,
    deadline,
)
from rdfshape.data import DataSpec
from rdfshape.schemas import SchemaSpec
from rdfshape.shapemaps import ShapeMapSources
from rdfshape.validation.orchestrator import ValidationService


@pytest.mark.resilience
class TestCancellationToken:
    """Flag, reason and callbacks of a token."""

    def test_fresh_token(self):
        token = CancellationToken()
        assert not token.is_cancelled()
        assert token.cancel_reason is None
        token.throw_if_cancelled("resolve data")

    def test_first_reason_wins(self):
        token = CancellationToken()
        token.cancel("client disconnected")
        token.cancel("timed out")
        assert token.is_cancelled()
        assert token.cancel_reason == "client disconnected"

    def test_exception_carries_step_and_reason(self):
        token = CancellationToken()
        token.cancel("timeout")
        with pytest.raises(OperationCancelledException) as exc_info:
            token.throw_if_cancelled("parse schema")
        assert exc_info.value.operation == "parse schema"
        assert exc_info.value.message == "Operation was cancelled: timeout"
        assert str(exc_info.value).endswith("(operation: parse schema)")

    def test_exception_without_step(self):
        assert str(OperationCancelledException()) == "Operation was cancelled"

    def test_failing_callback_does_not_stop_the_rest(self):
        token = CancellationToken()
        seen = []

        def explode():
            raise RuntimeError("boom")

        token.register_callback(lambda: seen.append("first"))
        token.register_callback(explode)
        token.register_callback(lambda: seen.append("last"))
        token.cancel()
        token.cancel()
        assert seen == ["first", "last"]

    def test_wait_is_woken_by_other_thread(self):
        token = CancellationToken()
        worker = threading.Thread(target=lambda: (time.sleep(0.05), token.cancel()))
        worker.start()
        assert token.wait(timeout=1.0) is True
        worker.join()

    def test_wait_times_out(self):
        assert CancellationToken().wait(timeout=0.05) is False


@pytest.mark.resilience
class TestDeadline:
    """Tests for timed cancellation."""

    def test_deadline_cancels_token(self):
        token = CancellationToken()
        with deadline(token, 0.05):
            assert token.wait(timeout=1.0) is True
        assert "timed out" in token.cancel_reason

    def test_deadline_stops_on_exit(self):
        token = CancellationToken()
        with deadline(token, 0.05):
            pass
        time.sleep(0.1)
        assert token.is_cancelled() is False

    def test_no_deadline(self):
        token = CancellationToken()
        with deadline(token, None) as same:
            assert same is token
        assert token.is_cancelled() is False


@pytest.mark.resilience
class TestSigintHandler:
    """Tests for routing SIGINT to a token."""

    def test_handler_installed_and_restored(self):
        original_handler = signal.getsignal(signal.SIGINT)
        token = CancellationToken()
        try:
            with cancel_on_sigint(token) as same:
                assert same is token
                assert signal.getsignal(signal.SIGINT) != original_handler
            assert signal.getsignal(signal.SIGINT) == original_handler
        finally:
            signal.signal(signal.SIGINT, original_handler)

    def test_first_interrupt_cancels_second_raises(self):
        token = CancellationToken()
        with cancel_on_sigint(token):
            handler = signal.getsignal(signal.SIGINT)
            handler(signal.SIGINT, None)
            assert token.is_cancelled() is True
            with pytest.raises(KeyboardInterrupt):
                handler(signal.SIGINT, None)


@pytest.mark.resilience
class TestValidationCancellation:
    """A cancelled request yields an error result instead of raising."""

    def test_cancelled_validation_returns_error_result(self):
        token = CancellationToken()
        token.cancel("client went away")

        outcome = ValidationService().validate(
            DataSpec.inline("<a> <b> <c> ."),
            SchemaSpec.inline("<S> { <b> . }"),
            ShapeMapSources.from_params({"shapeMap": "<a>@<S>"}),
            cancellation_token=token,
        )

        assert outcome.result.is_error
        assert "cancelled" in outcome.result.message
        assert outcome.trigger is None
        assert outcome.elapsed_ns == 0
