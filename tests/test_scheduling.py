import threading

from jobscheduler.scheduling import DeferredTaskScheduler


def test_task_fires_once():
    scheduler = DeferredTaskScheduler()
    fired = threading.Event()
    scheduler.schedule(1, 0.01, fired.set)
    assert fired.wait(2)
    assert scheduler.pending() == []


def test_cancel_prevents_firing():
    scheduler = DeferredTaskScheduler()
    fired = threading.Event()
    scheduler.schedule(1, 0.2, fired.set)
    assert scheduler.cancel(1) is True
    assert not fired.wait(0.4)
    assert scheduler.cancel(1) is False


def test_reschedule_replaces_previous_task():
    scheduler = DeferredTaskScheduler()
    calls = []
    done = threading.Event()
    scheduler.schedule("job", 0.2, lambda: calls.append("old"))
    scheduler.schedule("job", 0.01, lambda: (calls.append("new"), done.set()))
    assert done.wait(2)
    assert not threading.Event().wait(0.3)
    assert calls == ["new"]


def test_shutdown_cancels_everything():
    scheduler = DeferredTaskScheduler()
    fired = threading.Event()
    for key in range(3):
        scheduler.schedule(key, 0.2, fired.set)
    assert sorted(scheduler.pending()) == [0, 1, 2]
    scheduler.shutdown()
    assert scheduler.pending() == []
    assert not fired.wait(0.4)
