from datetime import date, datetime

from hrnotify.models.enums import Channel, EventType
from hrnotify.reminders import celery_app as celery_module
from hrnotify.reminders import tasks
from hrnotify.reminders.config import settings
from hrnotify.reminders.dispatcher import ChannelDispatcher
from hrnotify.reminders.scheduler import ReminderScheduler
from hrnotify.reminders.template_cache import TemplateCache

from .conftest import FakeAdapter, make_config, make_employee, make_template


class FakeLock:
    def __init__(self, available):
        self.available = available
        self.released = False

    def acquire(self):
        return self.available

    def release(self):
        self.released = True


class FakeRedis:
    """Lock server where the names in ``busy`` are held by another worker"""

    def __init__(self, busy=()):
        self.busy = set(busy)
        self.requested = []

    def lock(self, name, timeout=None, blocking=None):
        assert blocking is False
        self.requested.append(name)
        return FakeLock(name not in self.busy)


def _scheduler(store, now=None):
    return ReminderScheduler(
        store=store,
        dispatcher=ChannelDispatcher([FakeAdapter(Channel.EMAIL)]),
        template_cache=TemplateCache(store.find_active_templates),
        clock=(lambda: now) if now else datetime.now,
    )


def _birthday_due(store):
    store.configs[EventType.BIRTHDAY] = make_config(EventType.BIRTHDAY)
    store.employees = [make_employee(1, date_of_birth=date(1990, 3, 10))]
    store.templates = [make_template(1, EventType.BIRTHDAY, Channel.EMAIL, "Happy birthday {EmployeeName}")]


def test_beat_has_one_entry_per_event_type(monkeypatch):
    monkeypatch.setattr(celery_module.settings, "LEGACY_DAILY_RUN_ENABLED", False)
    schedule = celery_module.build_beat_schedule()

    assert {entry["args"][0] for entry in schedule.values()} == {e.value for e in EventType}
    assert all(entry["task"] == "reminders.run_event_type" for entry in schedule.values())


def test_legacy_daily_entry_only_when_enabled(monkeypatch):
    monkeypatch.setattr(celery_module.settings, "LEGACY_DAILY_RUN_ENABLED", True)
    schedule = celery_module.build_beat_schedule()

    assert schedule["reminders-legacy-daily"]["task"] == "reminders.run_all"


def test_run_event_type_task_returns_summary(monkeypatch, store):
    monkeypatch.setattr(tasks, "get_redis", lambda: None)
    monkeypatch.setattr(tasks, "get_scheduler", lambda: _scheduler(store))

    result = tasks.run_event_type_task("Birthday")

    assert result["event_type"] == "Birthday"
    assert (result["status"], result["reason"]) == ("skipped", "disabled")


def test_run_event_type_task_skips_when_lock_held(monkeypatch, store):
    monkeypatch.setattr(tasks, "get_redis", lambda: FakeRedis(busy={"reminders:run:Festival"}))
    monkeypatch.setattr(tasks, "get_scheduler", lambda: _scheduler(store))

    assert tasks.run_event_type_task("Festival") == {
        "event_type": "Festival",
        "status": "skipped",
        "reason": "already_running",
    }


def test_unknown_event_type(monkeypatch):
    monkeypatch.setattr(tasks, "get_redis", lambda: None)
    assert tasks.run_event_type_task("Retirement")["reason"] == "unknown_event_type"


def test_daily_run_sends_at_legacy_hour(monkeypatch, store):
    _birthday_due(store)
    redis = FakeRedis()
    monkeypatch.setattr(tasks, "get_redis", lambda: redis)
    monkeypatch.setattr(
        tasks, "get_scheduler",
        lambda: _scheduler(store, now=datetime(2024, 3, 10, settings.LEGACY_DAILY_RUN_HOUR, 0)),
    )

    results = {r["event_type"]: r for r in tasks.run_all_task()}

    assert list(results) == [e.value for e in EventType]
    assert results["Birthday"]["succeeded"] == 1
    assert len(store.records) == 1
    assert redis.requested == ["reminders:run:all"] + [f"reminders:run:{e.value}" for e in EventType]


def test_daily_run_respects_per_event_type_lock(monkeypatch, store):
    _birthday_due(store)
    monkeypatch.setattr(tasks, "get_redis", lambda: FakeRedis(busy={"reminders:run:Birthday"}))
    monkeypatch.setattr(tasks, "get_scheduler", lambda: _scheduler(store, now=datetime(2024, 3, 10, 10, 0)))

    results = {r["event_type"]: r for r in tasks.run_all_task()}

    assert (results["Birthday"]["status"], results["Birthday"]["reason"]) == ("skipped", "already_running")
    assert results["Festival"]["reason"] == "disabled"
    assert store.records == []


def test_daily_run_skipped_while_previous_daily_run_holds_lock(monkeypatch, store):
    monkeypatch.setattr(tasks, "get_redis", lambda: FakeRedis(busy={"reminders:run:all"}))
    monkeypatch.setattr(tasks, "get_scheduler", lambda: _scheduler(store))

    assert tasks.run_all_task() == []
