"""
In-memory derivations over a snapshot of price records.

Everything here is pure: callers load the records (and the products /
markets they reference), call these functions, and recompute whenever
the underlying collection changes.
"""

import uuid
from collections import Counter, defaultdict
from collections.abc import Iterable, Mapping

from pricewatch.core.time_utils import as_utc
from pricewatch.models.market import Market
from pricewatch.models.price import PriceRecord
from pricewatch.models.product import Product

MarketKey = uuid.UUID | str
PairKey = tuple[uuid.UUID, MarketKey]

ORIGINS: tuple[str, ...] = ("auditor", "contributor")


def normalize_market_name(name: str | None) -> str:
    """Case-folded, whitespace-collapsed form of a free-text market name."""
    return " ".join((name or "").split()).casefold()


def market_key(record: PriceRecord) -> MarketKey:
    """
    Identify the market of a record.

    Known markets are keyed by id; free-text markets by their
    normalized name.
    """
    if record.market_id is not None:
        return record.market_id
    return normalize_market_name(record.market_name)


def _recency(record: PriceRecord) -> tuple:
    # Equal timestamps: the highest id wins.
    return (as_utc(record.collected_at), str(record.id))


def latest_per_pair(records: Iterable[PriceRecord]) -> dict[PairKey, PriceRecord]:
    """
    Latest observation for every (product, market) pair.

    Exactly one record per pair; its collected_at is >= every other
    record sharing the pair.
    """
    latest: dict[PairKey, PriceRecord] = {}
    for record in records:
        key = (record.product_id, market_key(record))
        current = latest.get(key)
        if current is None or _recency(record) > _recency(current):
            latest[key] = record
    return latest


# ---------------------------------------------------------------------------
# Filtering
# ---------------------------------------------------------------------------


def matches_search(product: Product, search: str) -> bool:
    """Case-insensitive substring match on product name or brand."""
    if not search:
        return True
    term = search.casefold()
    return term in product.name.casefold() or term in (product.brand or "").casefold()


def matches_city(market: Market | None, city: str) -> bool:
    if not city:
        return True
    return market is not None and market.city == city


def matches_neighborhood(market: Market | None, city: str, neighborhood: str) -> bool:
    """
    Exact neighborhood match, only meaningful once a city is chosen.

    Without a city the neighborhood choice set is empty, so any
    neighborhood value is ignored.
    """
    if not city or not neighborhood:
        return True
    return market is not None and market.neighborhood == neighborhood


def filter_records(
    records: Iterable[PriceRecord],
    products: Mapping[uuid.UUID, Product],
    markets: Mapping[uuid.UUID, Market],
    search: str = "",
    city: str = "",
    neighborhood: str = "",
) -> list[PriceRecord]:
    """
    Keep records matching every active filter, preserving input order.

    Records whose product is unknown are dropped. Records on a
    free-text market have no location, so they only survive while no
    city is selected.
    """
    result: list[PriceRecord] = []
    for record in records:
        product = products.get(record.product_id)
        if product is None:
            continue
        market = markets.get(record.market_id) if record.market_id is not None else None
        if record.market_id is not None and market is None:
            continue
        if (
            matches_search(product, search)
            and matches_city(market, city)
            and matches_neighborhood(market, city, neighborhood)
        ):
            result.append(record)
    return result


def city_choices(markets: Iterable[Market]) -> list[str]:
    """Distinct cities, in first-seen order."""
    return list(dict.fromkeys(market.city for market in markets))


def neighborhood_choices(markets: Iterable[Market], city: str) -> list[str]:
    """Distinct neighborhoods of `city`; empty when no city is selected."""
    if not city:
        return []
    return list(
        dict.fromkeys(market.neighborhood for market in markets if market.city == city)
    )


# ---------------------------------------------------------------------------
# Aggregates
# ---------------------------------------------------------------------------


def count_by_origin(records: Iterable[PriceRecord]) -> dict[str, int]:
    counts = {origin: 0 for origin in ORIGINS}
    for record in records:
        counts[record.origin] = counts.get(record.origin, 0) + 1
    return counts


def average_price_by_product(records: Iterable[PriceRecord]) -> dict[uuid.UUID, float]:
    """Arithmetic mean per product, rounded to 2 decimals."""
    totals: dict[uuid.UUID, list[float]] = defaultdict(list)
    for record in records:
        totals[record.product_id].append(record.price)
    return {
        product_id: round(sum(prices) / len(prices), 2)
        for product_id, prices in totals.items()
    }


def top_products_by_count(
    records: Iterable[PriceRecord],
    n: int,
) -> list[tuple[uuid.UUID, int]]:
    """
    The n products with the most records, descending.

    Ties keep the order in which products first appear in the input.
    """
    counts = Counter(record.product_id for record in records)
    ranked = sorted(counts.items(), key=lambda item: -item[1])
    return ranked[:n]
