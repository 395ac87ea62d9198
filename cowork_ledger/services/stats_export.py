"""CSV rendering of period statistics."""

import csv
import io
from collections.abc import Sequence

from cowork_ledger.schemas.stats import (
    AttendancePeriodSummary,
    IncomePeriodSummary,
    MemberPresences,
    PeriodSummary,
    PresencePeriodSummary,
    UsagePeriodSummary,
)

SUMMARY_COLUMNS = ["date", "type", "current"]

DATA_COLUMNS: dict[type[PeriodSummary], list[str]] = {
    PresencePeriodSummary: [
        "coworkers_count",
        "coworked_days_count",
        "coworked_days_amount",
        "new_coworkers_count",
    ],
    UsagePeriodSummary: [
        "used_tickets",
        "days_abo",
        "ticket_amount",
        "subscription_amount",
        "usage_amount",
        "debt_value",
        "charges_amount",
    ],
    IncomePeriodSummary: [
        "tickets_count",
        "tickets_income",
        "subscriptions_count",
        "subscriptions_income",
        "memberships_count",
        "memberships_income",
        "incomes",
    ],
    AttendancePeriodSummary: [
        "members_count",
        "presence_days",
        "presence_value",
        "ticket_days",
        "subscription_days",
        "ticket_amount",
        "subscription_amount",
        "debt_value",
    ],
}

PRESENCES_COLUMNS = ["email", "presences"]


def columns_for(summary_cls: type[PeriodSummary]) -> list[str]:
    try:
        return SUMMARY_COLUMNS + DATA_COLUMNS[summary_cls]
    except KeyError:
        raise ValueError(f"No CSV layout for {summary_cls.__name__}") from None


def as_csv(summary: PeriodSummary) -> list[str]:
    """One CSV row for a period summary; lists of members are left out."""
    data = summary.data  # type: ignore[attr-defined]
    row = [summary.date.isoformat(), summary.type.value, "1" if summary.current else ""]
    for column in DATA_COLUMNS[type(summary)]:
        row.append(str(getattr(data, column)))
    return row


def to_csv(summaries: Sequence[PeriodSummary], summary_cls: type[PeriodSummary]) -> str:
    """Render summaries of one kind as CSV text with a header row."""
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(columns_for(summary_cls))
    for summary in summaries:
        writer.writerow(as_csv(summary))
    return output.getvalue()


def presences_to_csv(rows: Sequence[MemberPresences]) -> str:
    """Render a monthly presence report with one column per attended date.

    A member absent on a date another member attended gets 0 in that column.
    """
    days = sorted({d for row in rows for d in row.dates})
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(PRESENCES_COLUMNS + [d.isoformat() for d in days])
    for row in rows:
        writer.writerow(
            [row.email or str(row.member_id), str(row.presences)]
            + [str(row.dates.get(d, 0)) for d in days]
        )
    return output.getvalue()
