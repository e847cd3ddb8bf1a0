"""Tests for the workout event bus."""

from unittest.mock import Mock

from ..session.events import WorkoutEvent, WorkoutEventEmitter, WorkoutEventType


class TestWorkoutEventEmitter:

    def test_subscribe_and_emit(self):
        emitter = WorkoutEventEmitter(clock=lambda: 12.5)
        callback = Mock()
        emitter.subscribe(WorkoutEventType.DISPLAY, callback)
        emitter.emit(WorkoutEvent(WorkoutEventType.DISPLAY, data={"text": "Front left"}))
        emitter.emit(WorkoutEvent(WorkoutEventType.FLASH))
        callback.assert_called_once()
        event = callback.call_args[0][0]
        assert event.data["text"] == "Front left"
        assert event.timestamp == 12.5

    def test_subscribe_all_sees_everything(self):
        emitter = WorkoutEventEmitter()
        seen = []
        emitter.subscribe_all(seen.append)
        emitter.emit(WorkoutEvent(WorkoutEventType.DISPLAY, data={"text": "x"}))
        emitter.emit(WorkoutEvent(WorkoutEventType.PROGRESS, data={"fraction": 0.5}))
        assert [e.event_type for e in seen] == [WorkoutEventType.DISPLAY, WorkoutEventType.PROGRESS]

    def test_duplicate_subscription_is_ignored(self):
        emitter = WorkoutEventEmitter()
        callback = Mock()
        emitter.subscribe(WorkoutEventType.LOOP, callback)
        emitter.subscribe(WorkoutEventType.LOOP, callback)
        emitter.emit(WorkoutEvent(WorkoutEventType.LOOP, data={"pass": 2}))
        assert callback.call_count == 1

    def test_unsubscribe(self):
        emitter = WorkoutEventEmitter()
        specific, catch_all = Mock(), Mock()
        emitter.subscribe(WorkoutEventType.DISPLAY, specific)
        emitter.subscribe_all(catch_all)
        emitter.unsubscribe(WorkoutEventType.DISPLAY, specific)
        emitter.unsubscribe(None, catch_all)
        emitter.emit(WorkoutEvent(WorkoutEventType.DISPLAY, data={"text": "x"}))
        specific.assert_not_called()
        catch_all.assert_not_called()

    def test_failing_subscriber_does_not_block_others(self):
        emitter = WorkoutEventEmitter()
        broken = Mock(side_effect=RuntimeError("display crashed"))
        healthy = Mock()
        emitter.subscribe(WorkoutEventType.SHOT_CUE, broken)
        emitter.subscribe(WorkoutEventType.SHOT_CUE, healthy)
        emitter.emit(WorkoutEvent(WorkoutEventType.SHOT_CUE, data={"shot_number": 1}))
        healthy.assert_called_once()

    def test_clear_all(self):
        emitter = WorkoutEventEmitter()
        callback = Mock()
        emitter.subscribe(WorkoutEventType.DISPLAY, callback)
        emitter.subscribe_all(callback)
        emitter.clear_all()
        emitter.emit(WorkoutEvent(WorkoutEventType.DISPLAY))
        callback.assert_not_called()

    def test_str(self):
        assert str(WorkoutEvent(WorkoutEventType.LOOP, data={"pass": 2})) == "WorkoutEvent(LOOP, pass=2)"
        assert str(WorkoutEvent(WorkoutEventType.FLASH)) == "WorkoutEvent(FLASH)"
