"""Prometheus metrics for monitoring project creation, payments and rule rejections"""

from prometheus_client import Counter, Histogram

# Project metrics
projects_created_counter = Counter(
    "budget_projects_created_total",
    "Projects created",
    ["payment_type"],  # single | installment
)

compensating_rollback_counter = Counter(
    "budget_compensating_rollbacks_total",
    "Projects removed after their installments failed to persist",
    ["outcome"],  # compensated | failed
)

# Payment metrics
transactions_counter = Counter(
    "budget_transactions_total",
    "Payment transactions by outcome",
    ["outcome"],  # recorded | overage | rejected
)

overage_warning_counter = Counter(
    "budget_overage_warnings_total",
    "Warnings issued for payments above the remaining amount",
)

# Validation metrics
business_rule_rejection_counter = Counter(
    "budget_business_rule_rejections_total",
    "Requests refused by a business rule",
    ["code"],
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_project_created(payment_type: str) -> None:
    projects_created_counter.labels(payment_type=payment_type).inc()


def record_compensating_rollback(succeeded: bool) -> None:
    compensating_rollback_counter.labels(outcome="compensated" if succeeded else "failed").inc()


def record_transaction(outcome: str, warnings_count: int = 0) -> None:
    """Record a payment outcome; overage warnings are counted individually"""
    transactions_counter.labels(outcome=outcome).inc()
    if warnings_count:
        overage_warning_counter.inc(warnings_count)


def record_business_rule_rejection(code: str) -> None:
    business_rule_rejection_counter.labels(code=code).inc()
