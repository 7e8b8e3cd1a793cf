# metrics.py - read-only figures worked out from the ledger snapshot
#
# Nothing here touches the database or changes a record. Money sums use
# Decimal and start from zero; sale timestamps are stored in UTC and are
# grouped by day or month in the shop's reporting timezone.
from __future__ import annotations

from collections import Counter, OrderedDict
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional
from zoneinfo import ZoneInfo

from records import ZERO, PurchaseRecord, SaleRecord, StockItem

LOW_STOCK = "Low Stock"
FAST_SELLING = "Fast Selling"


def _zone(tz) -> ZoneInfo:
    if tz is None:
        return ZoneInfo("UTC")
    if isinstance(tz, str):
        return ZoneInfo(tz)
    return tz


def to_local(ts: datetime, tz=None) -> datetime:
    """UTC-naive database timestamp -> aware datetime in the reporting zone."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(_zone(tz))


def _local_midnight_as_utc(day: date, zone: ZoneInfo) -> datetime:
    local = datetime.combine(day, time.min, tzinfo=zone)
    return local.astimezone(timezone.utc).replace(tzinfo=None)


@dataclass(frozen=True)
class DateRange:
    """Half-open [start, end) window in UTC-naive time. None means unbounded."""

    start: Optional[datetime] = None
    end: Optional[datetime] = None

    @classmethod
    def from_dates(cls, from_date: Optional[date] = None, to_date: Optional[date] = None, tz=None):
        # the "to" day is included, so the window ends at the next midnight
        zone = _zone(tz)
        start = _local_midnight_as_utc(from_date, zone) if from_date else None
        end = _local_midnight_as_utc(to_date + timedelta(days=1), zone) if to_date else None
        return cls(start=start, end=end)

    def contains(self, ts: Optional[datetime]) -> bool:
        if ts is None:
            return self.start is None and self.end is None
        if ts.tzinfo is not None:
            ts = ts.astimezone(timezone.utc).replace(tzinfo=None)
        if self.start is not None and ts < self.start:
            return False
        if self.end is not None and ts >= self.end:
            return False
        return True


def _in_range(records, date_range):
    if date_range is None:
        return list(records)
    return [r for r in records if date_range.contains(r.created_at)]


# profit

def profit_by_category(sales: Iterable[SaleRecord]) -> dict:
    totals = {}
    for sale in sales:
        totals[sale.type] = totals.get(sale.type, ZERO) + sale.profit
    return totals


def total_profit(sales: Iterable[SaleRecord]) -> Decimal:
    return sum((sale.profit for sale in sales), ZERO)


@dataclass(frozen=True)
class MonthlyProfit:
    month: str
    profit: Decimal


def monthly_profit_trend(sales: Iterable[SaleRecord], tz=None) -> list[MonthlyProfit]:
    """Profit per calendar month, oldest month first, labelled like "Jan 2025"."""
    zone = _zone(tz)
    grouped = {}
    for sale in sales:
        local = to_local(sale.created_at, zone)
        key = (local.year, local.month)
        label, total = grouped.get(key, (local.strftime("%b %Y"), ZERO))
        grouped[key] = (label, total + sale.profit)
    return [MonthlyProfit(month=label, profit=total) for _, (label, total) in sorted(grouped.items())]


def profit_for_day(sales: Iterable[SaleRecord], day: date, tz=None) -> Decimal:
    return total_profit(_in_range(sales, DateRange.from_dates(day, day, tz)))


# investment vs sales

def investment_total(purchases: Iterable[PurchaseRecord], date_range: Optional[DateRange] = None) -> Decimal:
    return sum((p.total_cost for p in _in_range(purchases, date_range)), ZERO)


def sales_total(sales: Iterable[SaleRecord], date_range: Optional[DateRange] = None) -> Decimal:
    return sum((s.revenue for s in _in_range(sales, date_range)), ZERO)


def recent_sales(sales: Iterable[SaleRecord], limit: int = 50) -> list[SaleRecord]:
    ordered = sorted(sales, key=lambda s: (s.created_at, s.id), reverse=True)
    return ordered[:limit]


# stock

def low_stock(items: Iterable[StockItem], threshold: int = 5) -> list[StockItem]:
    return [item for item in items if item.is_low_stock(threshold)]


def sold_quantities(sales: Iterable[SaleRecord], since: Optional[datetime] = None) -> Counter:
    sold = Counter()
    for sale in sales:
        if since is None or sale.created_at >= since:
            sold[sale.saree_id] += sale.quantity
    return sold


@dataclass(frozen=True)
class RestockCandidate:
    item: StockItem
    reason: str
    sold_in_window: int

    def to_dict(self) -> dict:
        data = self.item.to_dict()
        data["reason"] = self.reason
        data["sold_in_window"] = self.sold_in_window
        return data


def restock_candidates(
    items: Iterable[StockItem],
    sales: Iterable[SaleRecord],
    low_stock_threshold: int = 5,
    fast_selling_threshold: int = 10,
    window_days: int = 30,
    now: Optional[datetime] = None,
) -> list[RestockCandidate]:
    """Sarees running low, or selling fast enough to run low soon.

    A saree that is both low and fast selling is reported as Low Stock.
    """
    now = now or datetime.now(timezone.utc).replace(tzinfo=None)
    sold = sold_quantities(sales, since=now - timedelta(days=window_days))

    candidates = []
    for item in items:
        recent = sold.get(item.id, 0)
        if item.is_low_stock(low_stock_threshold):
            candidates.append(RestockCandidate(item, LOW_STOCK, recent))
        elif recent > fast_selling_threshold:
            candidates.append(RestockCandidate(item, FAST_SELLING, recent))
    return candidates


@dataclass(frozen=True)
class TypeShare:
    type: str
    count: int
    percent: int


def type_distribution(items: Iterable[StockItem]) -> list[TypeShare]:
    counts = OrderedDict()
    for item in items:
        counts[item.type] = counts.get(item.type, 0) + 1
    total = sum(counts.values())
    shares = []
    for saree_type, count in counts.items():
        # display only, never summed again
        percent = (Decimal(count * 100) / Decimal(total)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        shares.append(TypeShare(saree_type, count, int(percent)))
    return shares


def short_name(name: str, width: int = 15) -> str:
    return name if len(name) <= width else name[:width] + "..."


def stock_levels(items: Iterable[StockItem], threshold: int = 5) -> list[dict]:
    return [
        {
            "id": item.id,
            "name": short_name(item.name),
            "stock": item.quantity,
            "low": item.is_low_stock(threshold),
        }
        for item in items
    ]


def filter_items(
    items: Iterable[StockItem],
    type: Optional[str] = None,
    min_price=None,
    max_price=None,
    in_stock: Optional[bool] = None,
    search: Optional[str] = None,
) -> list[StockItem]:
    wanted_type = type.strip().lower() if type else None
    needle = search.strip().lower() if search else None
    result = []
    for item in items:
        if wanted_type and item.type.lower() != wanted_type:
            continue
        if min_price is not None and item.price < min_price:
            continue
        if max_price is not None and item.price > max_price:
            continue
        if in_stock is True and item.quantity <= 0:
            continue
        if in_stock is False and item.quantity > 0:
            continue
        if needle and needle not in item.name.lower() and not any(needle in t.lower() for t in item.tags):
            continue
        result.append(item)
    return result
