"""Custom metrics for the Library Catalog service."""

import logfire

copy_circulation = logfire.metric_counter(
    "library.copies.circulation", description="Copy circulation events (borrow/return)"
)

late_fees_assessed = logfire.metric_counter(
    "library.loans.late_fees", unit="currency", description="Late fees assessed at return"
)


def record_circulation_event(event_type: str) -> None:
    """Record a borrow or return."""
    copy_circulation.add(1, {"event_type": event_type})


def record_late_fee(amount: float) -> None:
    late_fees_assessed.add(amount)
