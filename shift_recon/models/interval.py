"""Time Span: canonical representation of a planned work period on one day."""

from datetime import date, time
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict


def _whole_minute(value: time) -> time:
    if value.second or value.microsecond:
        raise ValueError("Times must be given to the minute (HH:MM)")
    if value.tzinfo is not None:
        raise ValueError("Times must be local, without a UTC offset")
    return value


# Time of day with minute precision; all interval arithmetic is in whole minutes
MinuteTime = Annotated[time, AfterValidator(_whole_minute)]


class TimeSpan(BaseModel):
    """
    A span of working time on a single calendar day, with an optional break.

    Dates and times are timezone-naive local values with minute precision.
    The span is immutable. Well-formedness (start < end, break inside the
    span) is not enforced on construction: a malformed span must still be
    representable so it can be reported as an ``invalid_time`` conflict.
    See ``span_violation``.
    """

    model_config = ConfigDict(frozen=True)

    date: date
    start: MinuteTime
    end: MinuteTime
    break_start: Optional[MinuteTime] = None
    break_end: Optional[MinuteTime] = None

    @property
    def has_break(self) -> bool:
        """A break only counts when both bounds are present."""
        return self.break_start is not None and self.break_end is not None

    def slot(self) -> tuple:
        """The fields that identify a slot bit-for-bit."""
        return (self.start, self.end, self.break_start, self.break_end)
