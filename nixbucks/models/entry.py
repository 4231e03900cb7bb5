"""
Entry and Recurrence Models

An Entry is one financial record: a subscription, an expense or an income
source. Its Recurrence decides on which dates it produces a cash-flow event.

DESIGN DECISION: Entry kinds form a tagged union (the ``kind`` field), not
a class hierarchy. The three kinds behave identically except for the sign
they apply, so one model with a tag keeps the file format flat and the
calculation code free of isinstance checks.

Date rules:
- Monthly events on a day the target month lacks are clamped to the
  month's last day (the 31st becomes Feb 28/29, never Mar 3).
- Yearly Feb 29 events fall on Feb 28 in non-leap years.
- Intervals ("every 3 months") count from the month/year of start_date.
"""

from datetime import date
from enum import Enum
from itertools import takewhile
from typing import Annotated, Iterator, Literal, Optional, Union
from uuid import UUID, uuid4

from dateutil.relativedelta import relativedelta
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from nixbucks.errors import InvalidAmountError, InvalidDateRangeError
from nixbucks.models.amount import Amount


def month_end(day: date) -> date:
    """Last day of the month ``day`` falls in."""
    return day + relativedelta(day=31)


# =============================================================================
# RECURRENCE RULES
# =============================================================================

class RecurrenceKind(str, Enum):
    """How often an entry's event repeats."""
    ONE_TIME = "one_time"
    DAILY = "daily"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class OneTime(BaseModel):
    """A single event on a fixed date."""

    kind: Literal["one_time"] = "one_time"
    on: date

    def dates(self, anchor: date) -> Iterator[date]:
        if self.on >= anchor:
            yield self.on

    def __str__(self) -> str:
        return f"Once on {self.on.isoformat()}"


class Daily(BaseModel):
    """An event every ``every`` days, counted from the start date."""

    kind: Literal["daily"] = "daily"
    every: int = Field(default=1, ge=1, le=3660)

    def dates(self, anchor: date) -> Iterator[date]:
        step = relativedelta(days=self.every)
        current = anchor
        while True:
            yield current
            try:
                current = current + step
            except OverflowError:
                return

    def __str__(self) -> str:
        return f"Each {self.every} days"


class Monthly(BaseModel):
    """An event on ``day`` of every ``every``-th month."""

    kind: Literal["monthly"] = "monthly"
    day: int = Field(..., ge=1, le=31)
    every: int = Field(default=1, ge=1, le=120)

    def dates(self, anchor: date) -> Iterator[date]:
        first = anchor.replace(day=1)
        step = 0
        while True:
            # day=31 lands on the 30th, 29th or 28th in shorter months
            try:
                event = first + relativedelta(months=step, day=self.day)
            except (ValueError, OverflowError):
                return
            if event >= anchor:
                yield event
            step += self.every

    def __str__(self) -> str:
        return f"Each {self.every} months on day {self.day}"


class Yearly(BaseModel):
    """An event on ``month``/``day`` of every ``every``-th year."""

    kind: Literal["yearly"] = "yearly"
    month: int = Field(..., ge=1, le=12)
    day: int = Field(..., ge=1, le=31)
    every: int = Field(default=1, ge=1, le=100)

    @model_validator(mode='after')
    def validate_day_exists(self) -> 'Yearly':
        # Checked against a leap year so Feb 29 is accepted
        if self.day > month_end(date(2000, self.month, 1)).day:
            raise ValueError(
                f"Month {self.month} never has a day {self.day}"
            )
        return self

    def dates(self, anchor: date) -> Iterator[date]:
        first = anchor.replace(month=1, day=1)
        step = 0
        while True:
            try:
                event = first + relativedelta(years=step, month=self.month, day=self.day)
            except (ValueError, OverflowError):
                return
            if event >= anchor:
                yield event
            step += self.every

    def __str__(self) -> str:
        return f"Each {self.every} years on day {self.day} of month {self.month}"


Recurrence = Annotated[
    Union[OneTime, Daily, Monthly, Yearly],
    Field(discriminator="kind"),
]


# =============================================================================
# ENTRY
# =============================================================================

class EntryKind(str, Enum):
    """
    Entry variants.

    The kind only decides the sign of the contribution.
    """
    SUBSCRIPTION = "subscription"
    EXPENSE = "expense"
    INCOME = "income"

    @property
    def sign(self) -> int:
        return 1 if self is EntryKind.INCOME else -1


class Entry(BaseModel):
    """
    A single financial record with a recurrence rule.

    ``amount`` is always non-negative; ``kind`` supplies the sign.
    The active window is ``[start_date, end_date]``, both inclusive.
    """
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    id: UUID = Field(
        default_factory=uuid4,
        description="Identifier, unique within a profile"
    )
    kind: EntryKind
    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
    )
    amount: Amount
    recurrence: Recurrence
    start_date: Optional[date] = Field(
        default=None,
        description="First day the entry is active; defaults to the date of a one-time entry"
    )
    end_date: Optional[date] = Field(
        default=None,
        description="Last day the entry is active (inclusive)"
    )
    notes: Optional[str] = Field(
        default=None,
        max_length=1000,
    )

    @field_validator('amount')
    @classmethod
    def validate_unsigned(cls, v: Amount) -> Amount:
        if v.is_negative():
            raise InvalidAmountError(
                f"Entry amounts are unsigned, got {v}; the entry kind sets the sign"
            )
        return v

    @model_validator(mode='after')
    def validate_dates(self) -> 'Entry':
        if self.start_date is None:
            if not isinstance(self.recurrence, OneTime):
                raise ValueError("start_date is required for recurring entries")
            self.start_date = self.recurrence.on

        if self.end_date is not None and self.end_date < self.start_date:
            raise InvalidDateRangeError(
                f"End date {self.end_date} is before start date {self.start_date}"
            )
        return self

    @property
    def is_recurring(self) -> bool:
        return not isinstance(self.recurrence, OneTime)

    @property
    def recurrence_kind(self) -> RecurrenceKind:
        return RecurrenceKind(self.recurrence.kind)

    def signed_amount(self) -> Amount:
        """Amount with the sign of this entry's kind applied."""
        return self.amount * self.kind.sign

    def occurrences(
        self,
        until: date,
        since: Optional[date] = None,
    ) -> Iterator[date]:
        """
        Lazily yield event dates in ascending order.

        Only dates inside the active window and ``[since, until]`` are
        produced. An entry that ended before ``since`` yields nothing.
        """
        upper = until if self.end_date is None else min(until, self.end_date)
        lower = self.start_date if since is None else max(since, self.start_date)
        if upper < lower:
            return

        for event in takewhile(lambda d: d <= upper, self.recurrence.dates(self.start_date)):
            if event >= lower:
                yield event

    def occurrences_until(self, day: date) -> int:
        """Number of events from start_date up to ``day`` inclusive."""
        return sum(1 for _ in self.occurrences(until=day))

    def contributes_on(self, day: date) -> bool:
        """Does this entry produce a cash-flow event on ``day``?"""
        return any(True for _ in self.occurrences(until=day, since=day))
