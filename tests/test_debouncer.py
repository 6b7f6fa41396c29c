"""
Tests for RecognitionDebouncer.
"""

import threading

import pytest

from services.debouncer import RecognitionDebouncer, TimerScheduler


class TestRecognitionDebouncer:
    def test_burst_yields_single_evaluation_of_last_event(self, scheduler):
        seen = []
        debouncer = RecognitionDebouncer(seen.append, delay=1.0, scheduler=scheduler)

        # one event every 200 ms for a full second
        for i in range(6):
            assert debouncer.submit(i) is True
            scheduler.advance(0.2)
        assert seen == []

        scheduler.advance(1.0)
        assert seen == [5]

    def test_fires_after_delay_only(self, scheduler):
        seen = []
        debouncer = RecognitionDebouncer(seen.append, delay=1.0, scheduler=scheduler)
        debouncer.submit('face')
        scheduler.advance(0.99)
        assert seen == []
        assert debouncer.pending is True
        scheduler.advance(0.02)
        assert seen == ['face']
        assert debouncer.pending is False

    def test_events_ignored_while_recognizing(self, scheduler):
        submitted_during = []

        def handler(event):
            # a new detection arrives while this attempt is in flight
            submitted_during.append(debouncer.submit('late'))

        debouncer = RecognitionDebouncer(handler, delay=1.0, scheduler=scheduler)
        debouncer.submit('first')
        scheduler.advance(1.0)

        assert submitted_during == [False]
        assert scheduler.pending == []
        assert debouncer.recognizing is False

    def test_recognizing_flag_set_during_handler(self, scheduler):
        states = []
        debouncer = RecognitionDebouncer(lambda e: states.append(debouncer.recognizing),
                                         delay=1.0, scheduler=scheduler)
        debouncer.submit('x')
        scheduler.advance(1.0)
        assert states == [True]
        assert debouncer.recognizing is False

    def test_cancel_drops_pending_attempt(self, scheduler):
        seen = []
        debouncer = RecognitionDebouncer(seen.append, delay=1.0, scheduler=scheduler)
        debouncer.submit('x')
        debouncer.cancel()
        scheduler.advance(5.0)
        assert seen == []

    def test_cancel_after_timer_started_is_honoured(self, scheduler):
        seen = []
        debouncer = RecognitionDebouncer(seen.append, delay=1.0, scheduler=scheduler)
        debouncer.submit('x')
        handle = scheduler.handles[-1]
        debouncer.cancel()
        # simulate a timer thread that was already past cancel()
        handle.fn(*handle.args)
        assert seen == []

    def test_closed_debouncer_ignores_submissions(self, scheduler):
        seen = []
        debouncer = RecognitionDebouncer(seen.append, delay=1.0, scheduler=scheduler)
        debouncer.submit('before')
        debouncer.close()

        assert debouncer.closed is True
        assert debouncer.pending is False
        assert debouncer.submit('late') is False
        assert debouncer.pending is False
        scheduler.advance(5.0)
        assert seen == []

    def test_close_wins_over_timer_already_started(self, scheduler):
        seen = []
        debouncer = RecognitionDebouncer(seen.append, delay=1.0, scheduler=scheduler)
        debouncer.submit('face')
        handle = scheduler.handles[-1]
        debouncer.close()
        # the timer thread got past cancel() and calls in anyway
        handle.fn(*handle.args)
        assert seen == []

    def test_reopen(self, scheduler):
        seen = []
        debouncer = RecognitionDebouncer(seen.append, delay=1.0, scheduler=scheduler)
        debouncer.close()
        debouncer.open()
        assert debouncer.submit('face') is True
        scheduler.advance(1.0)
        assert seen == ['face']

    def test_handler_errors_reset_gate(self, scheduler):
        def boom(event):
            raise RuntimeError('store down')

        debouncer = RecognitionDebouncer(boom, delay=1.0, scheduler=scheduler)
        debouncer.submit('x')
        scheduler.advance(1.0)
        assert debouncer.recognizing is False
        assert debouncer.submit('y') is True


class TestTimerScheduler:
    def test_runs_and_cancels(self):
        fired = threading.Event()
        handle = TimerScheduler().schedule(0.01, fired.set)
        assert fired.wait(1.0)

        never = threading.Event()
        handle = TimerScheduler().schedule(0.5, never.set)
        handle.cancel()
        assert not never.wait(0.7)
