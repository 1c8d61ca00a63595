"""
Reminder scheduler: one run per event type per trigger.

A run loads the event's configuration, works out who is due today, renders
the channel templates and dispatches in fixed-size concurrent batches,
writing one notification record per dispatch. Runs of the same event type
never overlap; a trigger that arrives while its run is still going is
dropped.
"""
import asyncio
import logging
import threading
from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Callable, Dict, List, Optional, Set

from hrnotify.models.enums import Channel, EventType, NotificationStatus
from hrnotify.services.base import UNKNOWN_ERROR, DeliveryResult
from hrnotify.utils.timezone import now_local, utc_now

from . import dates
from .dispatcher import ChannelDispatcher, recipient_address
from .errors import AnchorDateError, ReminderConfigurationError, TemplateConfigurationError
from .metrics import (
    reminder_data_errors_total,
    reminder_runs_completed_total,
    reminder_runs_skipped_total,
    reminder_runs_total,
    reminders_deduplicated_total,
)
from .renderer import render
from .schemas import EmployeeRead, EventConfigRead, EventContext, NotificationCreate, TemplateRead
from .template_cache import TemplateCache

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 10


@dataclass
class DispatchTask:
    employee: EmployeeRead
    channel: Channel
    template: TemplateRead
    context: EventContext

    @property
    def key(self):
        return (self.employee.id, self.channel, self.context.festival_id)


@dataclass
class TaskOutcome:
    task: DispatchTask
    result: DeliveryResult
    recorded: bool = True


@dataclass
class RunSummary:
    event_type: EventType
    run_date: date
    status: str = "completed"  # completed | skipped | error
    reason: Optional[str] = None
    channels: List[Channel] = field(default_factory=list)
    candidates: int = 0
    tasks: int = 0
    deduplicated: int = 0
    dispatched: int = 0
    succeeded: int = 0
    failed: int = 0
    unrecorded: int = 0
    data_errors: List[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        data = asdict(self)
        data["event_type"] = self.event_type.value
        data["run_date"] = self.run_date.isoformat()
        data["channels"] = [c.value for c in self.channels]
        return data


class ReminderScheduler:
    def __init__(
        self,
        store,
        dispatcher: ChannelDispatcher,
        template_cache: TemplateCache,
        batch_size: int = DEFAULT_BATCH_SIZE,
        dedupe_same_day: bool = True,
        enforce_delivery_time: bool = True,
        clock: Callable[[], datetime] = now_local,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self._store = store
        self._dispatcher = dispatcher
        self._templates = template_cache
        self._batch_size = batch_size
        self._dedupe = dedupe_same_day
        self._enforce_delivery_time = enforce_delivery_time
        self._clock = clock

        self._running: Set[EventType] = set()
        self._guard = threading.Lock()

    @property
    def template_cache(self) -> TemplateCache:
        return self._templates

    def is_running(self, event_type: EventType) -> bool:
        with self._guard:
            return EventType(event_type) in self._running

    async def run_event_type(
        self, event_type: EventType, now: Optional[datetime] = None, ignore_delivery_time: bool = False
    ) -> RunSummary:
        """
        Run reminders for one event type as of ``now`` (local wall-clock time).

        ``ignore_delivery_time`` is set by the legacy daily trigger, which fires
        once at a fixed hour and would otherwise miss later delivery times.

        Only catastrophic failures (e.g. the store being unreachable) propagate;
        configuration problems, bad candidate data and delivery failures are
        reported on the returned summary.
        """
        event_type = EventType(event_type)
        now = now or self._clock()

        with self._guard:
            if event_type in self._running:
                logger.warning("[Scheduler] [%s] Previous run still in progress; skipping trigger", event_type.value)
                reminder_runs_skipped_total.labels(event_type=event_type.value, reason="already_running").inc()
                return RunSummary(event_type=event_type, run_date=now.date(), status="skipped", reason="already_running")
            self._running.add(event_type)

        try:
            return await self._run(event_type, now, ignore_delivery_time)
        finally:
            with self._guard:
                self._running.discard(event_type)

    async def run_all(self, now: Optional[datetime] = None) -> List[RunSummary]:
        """Legacy daily entry point: every event type in turn, isolated from each other's failures.

        Delivery times are not enforced; the daily trigger is the delivery time.
        """
        now = now or self._clock()
        summaries = []
        for event_type in EventType:
            try:
                summaries.append(await self.run_event_type(event_type, now, ignore_delivery_time=True))
            except Exception as e:
                logger.exception("[Scheduler] [%s] Run failed", event_type.value)
                summaries.append(
                    RunSummary(event_type=event_type, run_date=now.date(), status="error", reason=str(e))
                )
        return summaries

    async def _run(self, event_type: EventType, now: datetime, ignore_delivery_time: bool = False) -> RunSummary:
        today = now.date()
        summary = RunSummary(event_type=event_type, run_date=today)
        reminder_runs_total.labels(event_type=event_type.value).inc()

        try:
            config = self._store.get_event_config(event_type)
        except ReminderConfigurationError as e:
            logger.error("[Scheduler] [%s] %s", event_type.value, e)
            return self._skip(summary, "invalid_config")
        if config is None or not config.enabled:
            logger.info("[Scheduler] [%s] Event not configured or disabled", event_type.value)
            return self._skip(summary, "disabled")
        if self._enforce_delivery_time and not ignore_delivery_time and now.time() < config.delivery_time:
            logger.debug(
                "[Scheduler] [%s] %s is before delivery time %s",
                event_type.value, now.time().isoformat(timespec="minutes"), config.delivery_time.isoformat(timespec="minutes"),
            )
            return self._skip(summary, "before_delivery_time")

        templates = self._resolve_templates(event_type, config.channels)
        summary.channels = list(templates)
        if not templates:
            logger.warning("[Scheduler] [%s] No active templates found for configured channels", event_type.value)
            reminder_runs_skipped_total.labels(event_type=event_type.value, reason="no_templates").inc()
            reminder_runs_completed_total.labels(event_type=event_type.value).inc()
            return summary

        tasks = self._build_tasks(event_type, config, templates, today, summary)
        summary.tasks = len(tasks)

        if self._dedupe and tasks:
            delivered = self._store.find_delivered_keys(event_type, today)
            fresh = [task for task in tasks if task.key not in delivered]
            summary.deduplicated = len(tasks) - len(fresh)
            if summary.deduplicated:
                reminders_deduplicated_total.labels(event_type=event_type.value).inc(summary.deduplicated)
            tasks = fresh

        summary.dispatched = len(tasks)
        logger.info(
            "[Scheduler] [%s] Processing %s reminders: %d candidate(s), %d task(s), %d already sent today",
            event_type.value, ", ".join(c.value for c in templates), summary.candidates,
            summary.dispatched, summary.deduplicated,
        )

        for outcome in await self._dispatch_in_batches(event_type, today, tasks):
            if outcome.result.success:
                summary.succeeded += 1
            else:
                summary.failed += 1
            if not outcome.recorded:
                summary.unrecorded += 1

        logger.info(
            "[Scheduler] [%s] Run complete: %d sent, %d failed, %d data error(s)",
            event_type.value, summary.succeeded, summary.failed, len(summary.data_errors),
        )
        reminder_runs_completed_total.labels(event_type=event_type.value).inc()
        return summary

    def _skip(self, summary: RunSummary, reason: str) -> RunSummary:
        summary.status = "skipped"
        summary.reason = reason
        reminder_runs_skipped_total.labels(event_type=summary.event_type.value, reason=reason).inc()
        return summary

    def _resolve_templates(self, event_type: EventType, channels: List[Channel]) -> Dict[Channel, TemplateRead]:
        templates: Dict[Channel, TemplateRead] = {}
        for channel in channels:
            try:
                template = self._templates.get_template(event_type, channel)
            except TemplateConfigurationError as e:
                logger.error("[Scheduler] [%s] %s; dropping %s for this run", event_type.value, e, channel.value)
                continue
            if template is None:
                logger.warning(
                    "[Scheduler] [%s] No active %s template; dropping channel for this run",
                    event_type.value, channel.value,
                )
                continue
            templates[channel] = template
        return templates

    def _build_tasks(
        self,
        event_type: EventType,
        config: EventConfigRead,
        templates: Dict[Channel, TemplateRead],
        today: date,
        summary: RunSummary,
    ) -> List[DispatchTask]:
        employees = self._store.find_active_employees()
        due: List[tuple] = []

        if event_type == EventType.FESTIVAL:
            festivals = self._store.find_active_festivals()
            summary.candidates = len(festivals) * len(employees)
            for festival in festivals:
                try:
                    if not dates.is_due_today(festival.festival_date, today, config.lead_days):
                        continue
                except AnchorDateError as e:
                    self._data_error(summary, f"festival {festival.id}: {e}")
                    continue
                context = EventContext(festival_id=festival.id, festival_name=festival.name)
                due.extend((employee, context) for employee in employees)
        else:
            summary.candidates = len(employees)
            for employee in employees:
                try:
                    context = self._employee_context(event_type, employee, today, config.lead_days)
                except AnchorDateError as e:
                    self._data_error(summary, f"employee {employee.id}: {e}")
                    continue
                if context is not None:
                    due.append((employee, context))

        return [
            DispatchTask(employee=employee, channel=channel, template=template, context=context)
            for employee, context in due
            for channel, template in templates.items()
        ]

    @staticmethod
    def _employee_context(
        event_type: EventType, employee: EmployeeRead, today: date, lead_days: List[int]
    ) -> Optional[EventContext]:
        if event_type == EventType.BIRTHDAY:
            return EventContext() if dates.is_due_today(employee.date_of_birth, today, lead_days) else None

        joined = employee.date_of_joining
        occurrence = dates.matching_occurrence(joined, today, lead_days)
        # The joining date itself (or an earlier year) is not an anniversary
        if occurrence is None or occurrence.year <= joined.year:
            return None
        return EventContext(years_completed=dates.years_completed(joined, today))

    def _data_error(self, summary: RunSummary, message: str) -> None:
        logger.warning("[Scheduler] [%s] Skipping candidate, %s", summary.event_type.value, message)
        summary.data_errors.append(message)
        reminder_data_errors_total.labels(event_type=summary.event_type.value).inc()

    async def _dispatch_in_batches(self, event_type: EventType, today: date, tasks: List[DispatchTask]) -> List[TaskOutcome]:
        outcomes: List[TaskOutcome] = []
        for start in range(0, len(tasks), self._batch_size):
            batch = tasks[start:start + self._batch_size]
            results = await asyncio.gather(
                *(self._execute(event_type, today, task) for task in batch),
                return_exceptions=True,
            )
            for task, result in zip(batch, results):
                if isinstance(result, BaseException):
                    logger.error(
                        "[Scheduler] [%s] Could not record %s outcome for employee %s: %r",
                        event_type.value, task.channel.value, task.employee.id, result,
                    )
                    outcomes.append(
                        TaskOutcome(task=task, result=DeliveryResult.failed(UNKNOWN_ERROR, str(result)), recorded=False)
                    )
                else:
                    outcomes.append(result)
        return outcomes

    async def _execute(self, event_type: EventType, today: date, task: DispatchTask) -> TaskOutcome:
        subject = None
        try:
            message = render(task.template, task.employee, task.context)
            subject = message.subject
            address = recipient_address(task.employee, task.channel)
            result = await self._dispatcher.send(task.channel, address, message.subject, message.body)
        except Exception as e:
            logger.exception("[Scheduler] [%s] Dispatch to employee %s failed", event_type.value, task.employee.id)
            result = DeliveryResult.failed(UNKNOWN_ERROR, str(e) or e.__class__.__name__)

        logger.info(
            "[%s] Sent to %s (%s): %s",
            task.channel.value, task.employee.full_name, task.employee.id,
            "SUCCESS" if result.success else f"FAILED ({result.error_code})",
        )
        record = self._build_record(event_type, today, task, result, subject)
        await asyncio.to_thread(self._store.create_notification, record)
        return TaskOutcome(task=task, result=result)

    @staticmethod
    def _build_record(
        event_type: EventType, today: date, task: DispatchTask, result: DeliveryResult, subject: Optional[str]
    ) -> NotificationCreate:
        metadata = {
            "template_id": task.template.id,
            "run_date": today.isoformat(),
            "attempts": result.attempts,
        }
        if subject:
            metadata["subject"] = subject
        if result.recipient:
            metadata["recipient"] = result.recipient
        if result.error_code:
            metadata["error_code"] = result.error_code
        if task.context.years_completed is not None:
            metadata["years_completed"] = task.context.years_completed
        if task.context.festival_id is not None:
            metadata["festival_id"] = task.context.festival_id
            metadata["festival_name"] = task.context.festival_name

        return NotificationCreate(
            employee_id=task.employee.id,
            event_type=event_type,
            channel=task.channel,
            status=NotificationStatus.SUCCESS if result.success else NotificationStatus.FAILED,
            response_message=result.message_id if result.success else result.error_message,
            sent_at=utc_now() if result.success else None,
            metadata=metadata,
        )
