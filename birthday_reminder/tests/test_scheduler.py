import datetime
import threading
from datetime import timedelta

from apscheduler.schedulers.background import BackgroundScheduler

from birthday_reminder import scheduler as sched
from birthday_reminder.exceptions import StoreQueryError


def fire_times(trigger, start, end):
    """Walk the trigger forward like the scheduler does with a simulated clock."""
    fires = []
    fire = trigger.get_next_fire_time(None, start)
    while fire is not None and fire <= end:
        fires.append(fire)
        fire = trigger.get_next_fire_time(fire, fire + timedelta(seconds=1))
    return fires


def test_trigger_fires_once_at_seven():
    trigger = sched.build_trigger(hour=7, minute=0, timezone="UTC")
    start = datetime.datetime(2026, 3, 14, 6, 0, tzinfo=datetime.timezone.utc)
    end = datetime.datetime(2026, 3, 14, 23, 59, tzinfo=datetime.timezone.utc)

    fires = fire_times(trigger, start, end)

    assert len(fires) == 1
    assert (fires[0].hour, fires[0].minute) == (7, 0)


def test_trigger_fires_once_per_day_over_two_days():
    trigger = sched.build_trigger(hour=7, minute=0, timezone="UTC")
    start = datetime.datetime(2026, 3, 14, 0, 0, tzinfo=datetime.timezone.utc)
    end = datetime.datetime(2026, 3, 15, 23, 59, tzinfo=datetime.timezone.utc)

    fires = fire_times(trigger, start, end)

    assert [(f.day, f.hour, f.minute) for f in fires] == [(14, 7, 0), (15, 7, 0)]


def test_ticks_run_the_task(monkeypatch):
    runs = []
    monkeypatch.setattr(sched, "run_daily_birthday_task", lambda app, today=None, **kw: runs.append(today))

    assert sched.scheduled_birthday_job("app", today=datetime.date(2026, 3, 14)) is True
    assert sched.scheduled_birthday_job("app", today=datetime.date(2026, 3, 15)) is True

    assert runs == [datetime.date(2026, 3, 14), datetime.date(2026, 3, 15)]


def test_overlapping_tick_is_skipped(monkeypatch):
    release = threading.Event()
    entered = threading.Event()
    runs = []

    def slow_task(app, today=None, **kw):
        runs.append(today)
        entered.set()
        release.wait(timeout=5)

    monkeypatch.setattr(sched, "run_daily_birthday_task", slow_task)

    worker = threading.Thread(target=sched.scheduled_birthday_job, args=("app",))
    worker.start()
    assert entered.wait(timeout=5)

    assert sched.scheduled_birthday_job("app") is False

    release.set()
    worker.join(timeout=5)
    assert len(runs) == 1
    # lock is released once the run finishes
    assert sched.scheduled_birthday_job("app") is True


def test_failed_tick_is_logged_not_raised(monkeypatch, caplog):
    def broken(app, today=None, **kw):
        raise StoreQueryError("database unavailable")

    monkeypatch.setattr(sched, "run_daily_birthday_task", broken)

    assert sched.scheduled_birthday_job("app") is False
    assert "Birthday job failed" in caplog.text

    # the next tick still runs
    monkeypatch.setattr(sched, "run_daily_birthday_task", lambda app, today=None, **kw: None)
    assert sched.scheduled_birthday_job("app") is True


def test_build_scheduler_registers_single_instance_job():
    scheduler = sched.build_scheduler("app", scheduler_cls=BackgroundScheduler)

    job = scheduler.get_job(sched.JOB_ID)
    assert job is not None
    assert job.max_instances == 1
    assert job.coalesce is True
    assert job.args == ("app",)
    assert len(scheduler.get_jobs()) == 1


def test_build_scheduler_logs_the_trigger_it_was_given(caplog):
    trigger = sched.build_trigger(hour=9, minute=30, timezone="UTC")

    with caplog.at_level("INFO", logger="birthday_reminder.scheduler"):
        sched.build_scheduler("app", scheduler_cls=BackgroundScheduler, trigger=trigger)

    assert str(trigger) in caplog.text
    assert "hour='9'" in caplog.text


def test_shutdown_stops_scheduler_then_closes_gateway(monkeypatch):
    hooks = []
    order = []
    monkeypatch.setattr(sched.atexit, "register", lambda fn, *a, **kw: hooks.append((fn, a, kw)))
    monkeypatch.setattr(sched, "close_gateway", lambda: order.append("close_gateway"))

    class FakeScheduler:
        def shutdown(self, wait=True):
            order.append(("shutdown", wait))

    sched.register_shutdown(FakeScheduler())

    # atexit runs handlers last-registered first
    for fn, args, kwargs in reversed(hooks):
        fn(*args, **kwargs)

    assert order == [("shutdown", False), "close_gateway"]


def test_shutdown_without_scheduler_only_closes_gateway(monkeypatch):
    hooks = []
    monkeypatch.setattr(sched.atexit, "register", lambda fn, *a, **kw: hooks.append(fn))

    sched.register_shutdown()

    assert hooks == [sched.close_gateway]
