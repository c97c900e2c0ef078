from prometheus_client import Counter, Gauge


scheduler_runs_total = Counter(
    "reminder_scheduler_runs_total",
    "Total scheduler scan runs",
)

scheduler_users_scanned_total = Counter(
    "reminder_scheduler_users_scanned_total",
    "Total users examined by scheduler runs",
)

scheduler_dispatched_total = Counter(
    "reminder_scheduler_dispatched_total",
    "Total notification batches dispatched by scheduler",
)

slots_suppressed_total = Counter(
    "reminder_slots_suppressed_total",
    "Batches skipped because the slot was already sent",
)

reminders_dispatch_success_total = Counter(
    "reminders_dispatch_success_total",
    "Total successful push deliveries (per token)",
)

reminders_dispatch_failed_total = Counter(
    "reminders_dispatch_failed_total",
    "Total failed push deliveries (per token)",
)

devices_removed_total = Counter(
    "reminder_devices_removed_total",
    "Device registrations deleted after permanent token errors",
)

user_errors_total = Counter(
    "reminder_user_errors_total",
    "Users whose processing raised during a run",
)

scheduler_last_run_timestamp = Gauge(
    "reminder_scheduler_last_run_timestamp",
    "Unix time the last scheduler run finished",
)
