"""Unit tests for AdmissionController."""

import threading
import time

import pytest

from imagefilter.core import AdmissionCancelled, CancelToken, RequestCancelled
from imagefilter.services import AdmissionController


class TestCreate:

    def test_zero_means_unlimited(self):
        assert AdmissionController.create(0) is None

    def test_positive_limit(self):
        controller = AdmissionController.create(3)
        assert controller.max_concurrent == 3

    def test_rejects_negative_limit(self):
        with pytest.raises(ValueError):
            AdmissionController(-1)


class TestAdmission:

    def test_at_most_n_in_flight(self):
        """With N slots and M > N concurrent requests, never more than N run."""
        controller = AdmissionController(2, poll_interval=0.01)
        observed = []
        lock = threading.Lock()

        def request():
            with controller.admit(CancelToken()):
                with lock:
                    observed.append(controller.in_flight)
                time.sleep(0.02)

        threads = [threading.Thread(target=request) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(observed) == 8
        assert max(observed) <= 2
        assert controller.peak <= 2
        assert controller.in_flight == 0

    def test_slot_released_on_error(self):
        controller = AdmissionController(1)
        with pytest.raises(RuntimeError):
            with controller.admit(CancelToken()):
                raise RuntimeError("boom")
        assert controller.in_flight == 0
        # The slot is usable again
        with controller.admit(CancelToken()):
            assert controller.in_flight == 1

    def test_cancelled_while_waiting(self):
        controller = AdmissionController(1, poll_interval=0.01)
        controller.acquire(CancelToken())

        token = CancelToken()
        token.cancel()
        with pytest.raises(AdmissionCancelled):
            controller.acquire(token)

        assert controller.in_flight == 1
        controller.release()
        assert controller.in_flight == 0

    def test_cancellation_is_distinguishable(self):
        assert issubclass(AdmissionCancelled, RequestCancelled)

    def test_timeout_while_waiting(self):
        controller = AdmissionController(1, poll_interval=0.01)
        controller.acquire(CancelToken())

        started = time.monotonic()
        with pytest.raises(AdmissionCancelled):
            controller.acquire(CancelToken(timeout=0.1))
        assert time.monotonic() - started < 2.0

        controller.release()

    def test_waiter_gets_released_slot(self):
        controller = AdmissionController(1, poll_interval=0.01)
        controller.acquire(CancelToken())
        admitted = threading.Event()

        def waiter():
            with controller.admit(CancelToken(timeout=5)):
                admitted.set()

        thread = threading.Thread(target=waiter)
        thread.start()
        time.sleep(0.05)
        assert not admitted.is_set()

        controller.release()
        thread.join(timeout=5)
        assert admitted.is_set()
        assert controller.in_flight == 0

    def test_cancelled_requests_do_not_leak_slots(self):
        controller = AdmissionController(2, poll_interval=0.01)
        for _ in range(5):
            token = CancelToken()
            token.cancel()
            with pytest.raises(AdmissionCancelled):
                with controller.admit(token):
                    pass
        with controller.admit(CancelToken()):
            with controller.admit(CancelToken()):
                assert controller.in_flight == 2
        assert controller.in_flight == 0
