# app/core/analytics/engine.py
"""
AGGREGATION ENGINE

Turns one owner's ledger into the summaries the dashboard draws:
category totals, time buckets, income vs expense, top categories,
spending trends and the headline numbers (net income, savings rate).

Rules:
- Pure functions: no I/O, no hidden state, same input -> same output
- Input is already scoped to ONE owner (see ledger.py)
- Empty input gives empty lists / zero summaries, never an error
- Date bounds are inclusive on both ends, either bound may be missing
- Money is summed as Decimal, nothing is rounded except savings_rate

Anything with kind/amount/category/occurred_at attributes can be fed in:
LedgerEntry, ORM rows, or plain test doubles.
"""

import calendar
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Optional, Protocol, Union

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENT = Decimal("0.01")

DEFAULT_TOP_LIMIT = 10


class TransactionKind(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class Granularity(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


class KindFilter(str, Enum):
    EXPENSE = "expense"
    INCOME = "income"
    BOTH = "both"


class InvalidQuery(ValueError):
    """Query parameters the caller should have rejected (e.g. start > end)."""


class Entry(Protocol):
    kind: str
    amount: Decimal
    category: str
    occurred_at: datetime


Bound = Union[date, datetime]


# =========================
# Result records
# =========================
@dataclass(frozen=True)
class CategoryTotal:
    category: str
    total: Decimal
    count: int


@dataclass(frozen=True)
class TopCategory:
    category: str
    total: Decimal
    count: int
    average: Decimal


@dataclass(frozen=True)
class BucketTotal:
    bucket: str
    total: Decimal
    count: int
    kind: str


@dataclass(frozen=True)
class ComparisonRow:
    bucket: str
    income: Decimal
    expense: Decimal


@dataclass(frozen=True)
class KindSummary:
    total: Decimal = ZERO
    count: int = 0
    average: Decimal = ZERO


@dataclass(frozen=True)
class DashboardSummary:
    income: KindSummary
    expense: KindSummary
    net_income: Decimal
    savings_rate: Decimal
    total_transactions: int


# =========================
# Time helpers
# =========================
def naive_utc(moment: datetime) -> datetime:
    if moment.tzinfo is not None:
        return moment.astimezone(timezone.utc).replace(tzinfo=None)
    return moment


def _lower(bound: Bound) -> datetime:
    if isinstance(bound, datetime):
        return naive_utc(bound)
    return datetime.combine(bound, time.min)


def _upper(bound: Bound) -> datetime:
    # A plain date covers the whole day
    if isinstance(bound, datetime):
        return naive_utc(bound)
    return datetime.combine(bound, time.max)


def shift_months(moment: datetime, months: int) -> datetime:
    """Move `moment` back by `months` calendar months, clamping the day."""
    index = moment.month - 1 - months
    year = moment.year + index // 12
    month = index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


@dataclass(frozen=True)
class DateRange:
    start: Optional[Bound] = None
    end: Optional[Bound] = None

    def validate(self) -> "DateRange":
        if self.start is not None and self.end is not None:
            if _lower(self.start) > _upper(self.end):
                raise InvalidQuery("start must be on or before end")
        return self

    def contains(self, moment: datetime) -> bool:
        moment = naive_utc(moment)
        if self.start is not None and moment < _lower(self.start):
            return False
        if self.end is not None and moment > _upper(self.end):
            return False
        return True


def bucket_key(moment: datetime, granularity: Union[Granularity, str]) -> str:
    """
    day   -> 2024-01-05
    week  -> 2024-W01 (ISO year + ISO week)
    month -> 2024-01

    Keys of the same granularity sort in chronological order.
    """
    granularity = Granularity(granularity)
    moment = naive_utc(moment)
    if granularity is Granularity.DAY:
        return f"{moment.year:04d}-{moment.month:02d}-{moment.day:02d}"
    if granularity is Granularity.WEEK:
        iso_year, iso_week, _ = moment.isocalendar()
        return f"{iso_year:04d}-W{iso_week:02d}"
    return f"{moment.year:04d}-{moment.month:02d}"


def month_key(moment: datetime) -> str:
    return bucket_key(moment, Granularity.MONTH)


# =========================
# Selection
# =========================
def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _kind_of(entry: Entry) -> str:
    kind = entry.kind
    return kind.value if isinstance(kind, Enum) else str(kind)


def _select(
    entries: Iterable[Entry],
    date_range: Optional[DateRange],
    kind: Optional[str],
) -> Iterator[Entry]:
    for entry in entries:
        if kind is not None and _kind_of(entry) != kind:
            continue
        if date_range is not None and not date_range.contains(entry.occurred_at):
            continue
        yield entry


# =========================
# Aggregations
# =========================
def category_totals(
    entries: Iterable[Entry], date_range: Optional[DateRange] = None
) -> List[CategoryTotal]:
    """Expense totals per category, biggest first (ties: name ascending)."""
    sums: Dict[str, Decimal] = defaultdict(Decimal)
    counts: Dict[str, int] = defaultdict(int)

    for entry in _select(entries, date_range, TransactionKind.EXPENSE.value):
        sums[entry.category] += _to_decimal(entry.amount)
        counts[entry.category] += 1

    rows = [CategoryTotal(name, sums[name], counts[name]) for name in sums]
    rows.sort(key=lambda row: (-row.total, row.category))
    return rows


def time_bucket_totals(
    entries: Iterable[Entry],
    date_range: Optional[DateRange] = None,
    granularity: Union[Granularity, str] = Granularity.MONTH,
    kind: Union[KindFilter, str] = KindFilter.EXPENSE,
) -> List[BucketTotal]:
    """
    Totals per time bucket, oldest bucket first.

    With kind=both each bucket gets one row per kind present in it,
    income before expense.
    """
    granularity = Granularity(granularity)
    kind = KindFilter(kind)
    wanted = None if kind is KindFilter.BOTH else kind.value

    sums: Dict[tuple, Decimal] = defaultdict(Decimal)
    counts: Dict[tuple, int] = defaultdict(int)

    for entry in _select(entries, date_range, wanted):
        key = (bucket_key(entry.occurred_at, granularity), _kind_of(entry))
        sums[key] += _to_decimal(entry.amount)
        counts[key] += 1

    order = sorted(sums, key=lambda key: (key[0], key[1] != TransactionKind.INCOME.value))
    return [
        BucketTotal(bucket=bucket, total=sums[(bucket, k)], count=counts[(bucket, k)], kind=k)
        for bucket, k in order
    ]


def income_vs_expense(
    entries: Iterable[Entry],
    date_range: Optional[DateRange] = None,
    granularity: Union[Granularity, str] = Granularity.MONTH,
) -> List[ComparisonRow]:
    """Income and expense side by side per bucket, zero where a side is missing."""
    per_bucket: Dict[str, Dict[str, Decimal]] = {}

    for row in time_bucket_totals(entries, date_range, granularity, KindFilter.BOTH):
        sides = per_bucket.setdefault(
            row.bucket,
            {TransactionKind.INCOME.value: ZERO, TransactionKind.EXPENSE.value: ZERO},
        )
        sides[row.kind] = row.total

    return [
        ComparisonRow(
            bucket=bucket,
            income=sides[TransactionKind.INCOME.value],
            expense=sides[TransactionKind.EXPENSE.value],
        )
        for bucket, sides in per_bucket.items()
    ]


def _clamp_limit(limit: Any) -> int:
    if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
        return DEFAULT_TOP_LIMIT
    return limit


def top_categories(
    entries: Iterable[Entry],
    date_range: Optional[DateRange] = None,
    limit: int = DEFAULT_TOP_LIMIT,
) -> List[TopCategory]:
    """Top `limit` expense categories with their average ticket size.

    A non-positive or non-integer limit falls back to DEFAULT_TOP_LIMIT.
    """
    limit = _clamp_limit(limit)
    return [
        TopCategory(
            category=row.category,
            total=row.total,
            count=row.count,
            average=row.total / row.count,
        )
        for row in category_totals(entries, date_range)[:limit]
    ]


def trend_window(now: datetime, months_back: int) -> DateRange:
    """[now - months_back calendar months, now], both ends naive UTC."""
    now = naive_utc(now)
    return DateRange(start=shift_months(now, months_back), end=now)


def spending_trends(
    entries: Iterable[Entry],
    months_back: int = 6,
    *,
    now: datetime,
) -> Dict[str, Dict[str, Decimal]]:
    """
    Expense per category per month over [now - months_back months, now].

    {"Food": {"2024-01": Decimal("200"), "2024-02": Decimal("50")}, ...}

    A missing category/month pair means nothing was spent.
    """
    if months_back < 0:
        raise InvalidQuery("months_back must not be negative")

    window = trend_window(now, months_back)

    table: Dict[str, Dict[str, Decimal]] = defaultdict(lambda: defaultdict(Decimal))
    for entry in _select(entries, window, TransactionKind.EXPENSE.value):
        table[entry.category][month_key(entry.occurred_at)] += _to_decimal(entry.amount)

    return {
        category: dict(sorted(table[category].items()))
        for category in sorted(table)
    }


def _kind_summary(total: Decimal, count: int) -> KindSummary:
    if not count:
        return KindSummary()
    return KindSummary(total=total, count=count, average=total / count)


def savings_rate(income_total: Decimal, net_income: Decimal) -> Decimal:
    if income_total <= 0:
        return ZERO
    rate = net_income / income_total * HUNDRED
    return rate.quantize(CENT, rounding=ROUND_HALF_UP)


def dashboard_summary(
    entries: Iterable[Entry], date_range: Optional[DateRange] = None
) -> DashboardSummary:
    """Headline numbers for the dashboard over an optional range."""
    totals = {kind.value: ZERO for kind in TransactionKind}
    counts = {kind.value: 0 for kind in TransactionKind}

    for entry in _select(entries, date_range, None):
        kind = _kind_of(entry)
        if kind not in totals:
            continue
        totals[kind] += _to_decimal(entry.amount)
        counts[kind] += 1

    income = _kind_summary(totals["income"], counts["income"])
    expense = _kind_summary(totals["expense"], counts["expense"])
    net_income = income.total - expense.total

    return DashboardSummary(
        income=income,
        expense=expense,
        net_income=net_income,
        savings_rate=savings_rate(income.total, net_income),
        total_transactions=income.count + expense.count,
    )
