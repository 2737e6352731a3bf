"""Prometheus metrics for commands, tax schedules, provisions and receipt uploads"""

from typing import Iterable

from prometheus_client import Counter, Histogram

from cash_planner.domain.models import TaxSchedule
from cash_planner.domain.reports import ProvisionOutcome

# Command metrics
command_counter = Counter(
    "cash_planner_command_total",
    "Commands handled",
    ["command", "outcome"],  # ok | error
)

schedules_generated_counter = Counter(
    "cash_planner_schedules_generated_total",
    "Tax schedules generated",
    ["tax_type"],
)

provision_outcome_counter = Counter(
    "cash_planner_provision_outcome_total",
    "Provision optimizer outcomes",
    ["outcome"],  # shortfall | distribute | optimal
)

# Storage metrics
receipt_upload_bytes_histogram = Histogram(
    "cash_planner_receipt_upload_bytes",
    "Uploaded receipt sizes",
    buckets=[10_000, 100_000, 500_000, 1_000_000, 5_000_000, 10_000_000],
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_command(command: str, success: bool) -> None:
    command_counter.labels(command=command, outcome="ok" if success else "error").inc()


def record_schedules(schedules: Iterable[TaxSchedule]) -> None:
    """Count generated schedules per tax type"""
    for schedule in schedules:
        schedules_generated_counter.labels(tax_type=schedule.tax_type.value).inc()


def record_provision_outcome(outcome: ProvisionOutcome) -> None:
    provision_outcome_counter.labels(outcome=outcome.value).inc()
