"""Billing calendar: bill month parsing and period/statement/due dates.

A bill for month M covers consumption read in month M-1:
- period: (M-1) reading_day+1 .. M reading_day (default 27th .. 26th)
- statement date: M statement_day (default 27th)
- due date: (M+1) due_day (default 6th)
"""

import re
from dataclasses import dataclass
from datetime import date

from src.services.errors import ValidationError

_BILLING_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")


def add_months(month_start: date, months: int) -> date:
    """Shift a first-of-month date by a number of months."""
    index = month_start.year * 12 + (month_start.month - 1) + months
    year, month = divmod(index, 12)
    return date(year, month + 1, 1)


def month_index(value: date) -> int:
    """Absolute month number (year * 12 + month) used for month differences."""
    return value.year * 12 + value.month


def format_billing_month(value: date) -> str:
    """Format a month as 'YYYY-MM'."""
    return f"{value.year:04d}-{value.month:02d}"


def month_label(value: date) -> str:
    """Human readable month label, e.g. 'January 2025'."""
    return value.strftime("%B %Y")


def parse_billing_month(value: str | None) -> date:
    """Parse a 'YYYY-MM' bill month into its first day.

    Raises:
        ValidationError: If the value is missing or malformed
    """
    if not value:
        raise ValidationError("Billing month is required")

    match = _BILLING_MONTH_RE.match(value.strip())
    if not match:
        raise ValidationError(f"Invalid billing month format: {value!r} (expected YYYY-MM)")

    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12 or year < 1900:
        raise ValidationError(f"Invalid billing month: {value!r}")
    return date(year, month, 1)


@dataclass(frozen=True)
class BillingSchedule:
    """Days of month that anchor the billing calendar."""

    reading_day: int = 26
    statement_day: int = 27
    due_day: int = 6


DEFAULT_SCHEDULE = BillingSchedule()


@dataclass(frozen=True)
class BillingPeriod:
    """All dates derived from one bill month."""

    billing_month: date
    period_from: date
    period_to: date
    statement_date: date
    due_date: date

    @classmethod
    def for_month(
        cls, billing_month: date, schedule: BillingSchedule = DEFAULT_SCHEDULE
    ) -> "BillingPeriod":
        month_start = billing_month.replace(day=1)
        previous = add_months(month_start, -1)
        following = add_months(month_start, 1)
        return cls(
            billing_month=month_start,
            period_from=previous.replace(day=schedule.reading_day + 1),
            period_to=month_start.replace(day=schedule.reading_day),
            statement_date=month_start.replace(day=schedule.statement_day),
            due_date=following.replace(day=schedule.due_day),
        )

    @classmethod
    def parse(cls, value: str | None, schedule: BillingSchedule = DEFAULT_SCHEDULE) -> "BillingPeriod":
        return cls.for_month(parse_billing_month(value), schedule)

    @property
    def reading_period(self) -> date:
        """First day of the month whose readings this bill consumes."""
        return add_months(self.billing_month, -1)

    @property
    def previous_month(self) -> date:
        return add_months(self.billing_month, -1)

    @property
    def label(self) -> str:
        """'YYYY-MM' form of the bill month."""
        return format_billing_month(self.billing_month)

    @property
    def number_segment(self) -> str:
        """'YYYYMM' segment used in bill numbers."""
        return f"{self.billing_month.year:04d}{self.billing_month.month:02d}"


__all__ = [
    "BillingPeriod",
    "BillingSchedule",
    "DEFAULT_SCHEDULE",
    "add_months",
    "format_billing_month",
    "month_index",
    "month_label",
    "parse_billing_month",
]
