"""Expansion of a template appointment into a recurring series."""

from datetime import datetime, timedelta

from dateutil.relativedelta import relativedelta

from medilink.schemas.appointments import AppointmentCreate, RecurrenceFrequency


def offset(frequency: RecurrenceFrequency, step: int) -> timedelta | relativedelta:
    """Return the shift applied to the ``step``-th instance of a series."""
    frequency = RecurrenceFrequency(frequency)
    if frequency is RecurrenceFrequency.DAILY:
        return timedelta(days=step)
    if frequency is RecurrenceFrequency.WEEKLY:
        return timedelta(weeks=step)
    # Calendar months: a day past the end of a shorter month clamps to its
    # last day, e.g. Jan 31 + 1 month -> Feb 28 (Feb 29 in leap years).
    return relativedelta(months=step)


def shift(moment: datetime, frequency: RecurrenceFrequency, step: int) -> datetime:
    return moment + offset(frequency, step)


def expand(
    template: AppointmentCreate,
    frequency: RecurrenceFrequency,
    count: int,
) -> list[AppointmentCreate]:
    """
    Produce ``count`` appointments starting with the template itself.

    Every instance is offset from the template, not from its predecessor,
    so monthly series return to the template's day of month after a short
    month. All other fields are copied verbatim; instances share no series
    identifier.

    Raises:
        ValueError: If count is less than 1
    """
    if count < 1:
        raise ValueError("count must be at least 1")

    return [
        template.model_copy(
            update={
                "start": shift(template.start, frequency, step),
                "end": shift(template.end, frequency, step),
            }
        )
        for step in range(count)
    ]
