from prometheus_client import Counter


reminder_runs_total = Counter(
    "reminder_runs_total",
    "Total reminder runs started",
    ["event_type"],
)

reminder_runs_completed_total = Counter(
    "reminder_runs_completed_total",
    "Total reminder runs that ran to completion",
    ["event_type"],
)

reminder_runs_skipped_total = Counter(
    "reminder_runs_skipped_total",
    "Total reminder runs that ended without dispatching",
    ["event_type", "reason"],
)

reminder_data_errors_total = Counter(
    "reminder_data_errors_total",
    "Total candidates skipped because of bad anchor data",
    ["event_type"],
)

reminders_dispatch_success_total = Counter(
    "reminders_dispatch_success_total",
    "Total successful channel dispatches",
    ["channel"],
)

reminders_dispatch_failed_total = Counter(
    "reminders_dispatch_failed_total",
    "Total failed channel dispatches",
    ["channel"],
)

reminders_deduplicated_total = Counter(
    "reminders_deduplicated_total",
    "Total dispatch tasks skipped because they already succeeded today",
    ["event_type"],
)

template_cache_hits_total = Counter(
    "reminder_template_cache_hits_total",
    "Template lookups served from cache",
)

template_cache_misses_total = Counter(
    "reminder_template_cache_misses_total",
    "Template lookups that queried the store",
)
