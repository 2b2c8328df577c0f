from prometheus_client import Counter


medications_armed_total = Counter(
    "medications_armed_total",
    "Total reminder jobs armed for medications",
)

medications_schedule_exhausted_total = Counter(
    "medications_schedule_exhausted_total",
    "Total arm calls that found no future occurrence to arm",
)

reminder_fires_dispatched_total = Counter(
    "reminder_fires_dispatched_total",
    "Total reminder firings that queued a notification",
)

reminder_fires_skipped_total = Counter(
    "reminder_fires_skipped_total",
    "Total reminder firings that were no-ops",
    ["reason"],
)

reminder_fire_failed_total = Counter(
    "reminder_fire_failed_total",
    "Total reminder firings that raised",
)

reconcile_rearmed_total = Counter(
    "reminder_reconcile_rearmed_total",
    "Total medications re-armed by the reconciliation sweep",
)

reports_completed_total = Counter(
    "reports_completed_total",
    "Total report exports generated",
)

reports_failed_total = Counter(
    "reports_failed_total",
    "Total report generations that failed",
)

delivery_sent_total = Counter(
    "delivery_messages_sent_total",
    "Total queued messages handed to the mail sender",
)

delivery_failed_total = Counter(
    "delivery_messages_failed_total",
    "Total queued messages the mail sender rejected",
)
