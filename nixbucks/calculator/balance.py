"""
Balance Calculator

DESIGN DECISION: Calculation is DETERMINISTIC and pure.
Every function takes a Profile and dates and returns Amounts; nothing here
reads the clock, touches storage or mutates its input. The presentation
layer passes "today" in explicitly.

Balances count occurrences, not billing days: a monthly subscription that
has been active for five months has cost five times its amount by now,
whether or not today happens to be a billing day.

All sums use Amount, so no float ever enters a balance.
"""

import heapq
from datetime import date, timedelta
from itertools import groupby
from operator import itemgetter
from typing import Iterator, NamedTuple, Optional

from pydantic import BaseModel, Field

from nixbucks.models.amount import Amount
from nixbucks.models.entry import Entry, EntryKind, month_end
from nixbucks.models.profile import Profile


class Snapshot(NamedTuple):
    """Running balance right after all events of one day."""
    on: date
    balance: Amount


class PeriodSummary(BaseModel):
    """
    Totals for a date range, split by entry kind.

    Outflows are reported as positive magnitudes; ``net`` applies the signs.
    """

    start: date
    end: date
    income: Amount = Field(default_factory=Amount.zero)
    subscriptions: Amount = Field(default_factory=Amount.zero)
    expenses: Amount = Field(default_factory=Amount.zero)

    @property
    def outflow(self) -> Amount:
        return self.subscriptions + self.expenses

    @property
    def net(self) -> Amount:
        return self.income - self.outflow


def month_bounds(year: int, month: int) -> tuple[date, date]:
    if not 1 <= month <= 12:
        raise ValueError(f"Month must be between 1 and 12, got {month}")
    start = date(year, month, 1)
    return start, month_end(start)


def _day_before(day: date) -> Optional[date]:
    return None if day == date.min else day - timedelta(days=1)


def _count(entry: Entry, start: date, end: date) -> int:
    return sum(1 for _ in entry.occurrences(until=end, since=start))


def balance_at(profile: Profile, day: date) -> Amount:
    """
    Balance at the end of ``day``: the initial balance plus every
    contribution from each entry's start date up to ``day`` inclusive.
    """
    total = profile.initial_balance
    for entry in profile.entries:
        count = entry.occurrences_until(day)
        if count:
            total = total + entry.signed_amount() * count
    return total


def period_delta(profile: Profile, start: date, end: date) -> Amount:
    """Net change contributed by events inside ``[start, end]``."""
    total = Amount.zero()
    for entry in profile.entries:
        count = _count(entry, start, end)
        if count:
            total = total + entry.signed_amount() * count
    return total


def monthly_delta(profile: Profile, year: int, month: int) -> Amount:
    """Net change from contributions landing in the given calendar month."""
    start, end = month_bounds(year, month)
    return period_delta(profile, start, end)


def summarize(profile: Profile, start: date, end: date) -> PeriodSummary:
    """Split the contributions inside ``[start, end]`` by entry kind."""
    totals = {kind: Amount.zero() for kind in EntryKind}
    for entry in profile.entries:
        count = _count(entry, start, end)
        if count:
            totals[entry.kind] = totals[entry.kind] + entry.amount * count

    return PeriodSummary(
        start=start,
        end=end,
        income=totals[EntryKind.INCOME],
        subscriptions=totals[EntryKind.SUBSCRIPTION],
        expenses=totals[EntryKind.EXPENSE],
    )


def monthly_summary(profile: Profile, year: int, month: int) -> PeriodSummary:
    start, end = month_bounds(year, month)
    return summarize(profile, start, end)


def cost_until(profile: Profile, from_date: date, to_date: date) -> Amount:
    """
    Total outflow (subscriptions and expenses) in ``[from_date, to_date]``.

    Returned as a positive magnitude. Zero when the range is empty.
    """
    if to_date < from_date:
        return Amount.zero()
    return summarize(profile, from_date, to_date).outflow


def cost_to_year_end(profile: Profile, today: date) -> Amount:
    """What the user still has to pay from ``today`` until Dec 31."""
    return cost_until(profile, today, date(today.year, 12, 31))


def _events(entry: Entry, since: date, until: date) -> Iterator[tuple[date, Amount]]:
    signed = entry.signed_amount()
    for day in entry.occurrences(until=until, since=since):
        yield day, signed


class Projection:
    """
    Forward projection of the balance between two dates.

    Iterating yields a Snapshot for each date in ``[from_date, to_date]`` on
    which at least one entry contributes. Dates are strictly increasing;
    several events on the same day are merged into one snapshot.

    The sequence is lazy and can be iterated any number of times. Each pass
    reads the profile as it is at that moment.
    """

    def __init__(self, profile: Profile, from_date: date, to_date: date):
        self.profile = profile
        self.from_date = from_date
        self.to_date = to_date

    def opening_balance(self) -> Amount:
        """Balance at the end of the day before ``from_date``."""
        previous = _day_before(self.from_date)
        if previous is None:
            return self.profile.initial_balance
        return balance_at(self.profile, previous)

    def __iter__(self) -> Iterator[Snapshot]:
        if self.from_date > self.to_date:
            return

        running = self.opening_balance()
        streams = [
            _events(entry, self.from_date, self.to_date)
            for entry in self.profile.entries
        ]
        merged = heapq.merge(*streams, key=itemgetter(0))
        for day, events in groupby(merged, key=itemgetter(0)):
            running = running + sum(amount for _, amount in events)
            yield Snapshot(day, running)

    def __repr__(self) -> str:
        return (
            f"Projection({self.profile.name!r}, "
            f"{self.from_date.isoformat()}..{self.to_date.isoformat()})"
        )


def project(profile: Profile, from_date: date, to_date: date) -> Projection:
    """Lazy, restartable sequence of balance snapshots; see Projection."""
    return Projection(profile, from_date, to_date)


def settle(profile: Profile, as_of: date) -> Profile:
    """
    Fold one-time entries dated before ``as_of`` into the initial balance.

    Returns a new Profile without those entries. For every date on or after
    ``as_of`` the balance is unchanged; earlier dates are no longer
    reconstructable, which is the point of settling.
    """
    initial = profile.initial_balance
    kept = []
    for entry in profile.entries:
        if not entry.is_recurring and entry.recurrence.on < as_of:
            count = entry.occurrences_until(entry.recurrence.on)
            if count:
                initial = initial + entry.signed_amount() * count
            continue
        kept.append(entry.model_copy(deep=True))

    return profile.model_copy(
        update={"initial_balance": initial, "entries": kept},
        deep=True,
    )
