import itertools
import random
import uuid
from datetime import datetime, timedelta, timezone

from pricewatch.models.market import Market
from pricewatch.models.price import PriceRecord
from pricewatch.models.product import Product
from pricewatch.services.price_aggregation import (
    average_price_by_product,
    city_choices,
    count_by_origin,
    filter_records,
    latest_per_pair,
    market_key,
    matches_city,
    matches_neighborhood,
    neighborhood_choices,
    top_products_by_count,
)

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)

MILK = Product(id=uuid.uuid4(), name="Leite Integral", brand="Piracanjuba", barcode="1")
RICE = Product(id=uuid.uuid4(), name="Arroz Tipo 1", brand="Camil", barcode="2")
COFFEE = Product(id=uuid.uuid4(), name="Café Torrado", brand="Pilão", barcode="3")
PRODUCTS = {p.id: p for p in (MILK, RICE, COFFEE)}

CENTRAL = Market(id=uuid.uuid4(), name="Central", city="Campinas", state="SP", neighborhood="Cambuí")
BAIRRO = Market(id=uuid.uuid4(), name="Bairro", city="Campinas", state="SP", neighborhood="Taquaral")
PAULISTA = Market(id=uuid.uuid4(), name="Paulista", city="São Paulo", state="SP", neighborhood="Bela Vista")
MARKETS = {m.id: m for m in (CENTRAL, BAIRRO, PAULISTA)}


def record(product, market=None, price=1.0, days_ago=0, origin="contributor", market_name=None):
    return PriceRecord(
        id=uuid.uuid4(),
        product_id=product.id,
        market_id=market.id if market else None,
        market_name=market_name,
        price=price,
        collected_at=NOW - timedelta(days=days_ago),
        user_id=uuid.uuid4(),
        origin=origin,
    )


# -------- Latest per pair --------


def test_latest_per_pair_prefers_most_recent():
    a = record(MILK, CENTRAL, price=4.89, days_ago=1)
    b = record(MILK, CENTRAL, price=4.59, days_ago=10)

    latest = latest_per_pair([b, a])

    assert list(latest.values()) == [a]
    assert latest[(MILK.id, CENTRAL.id)].price == 4.89


def test_latest_per_pair_one_record_per_group():
    rng = random.Random(7)
    records = [
        record(rng.choice([MILK, RICE]), rng.choice([CENTRAL, BAIRRO]), days_ago=rng.randint(0, 30))
        for _ in range(60)
    ]

    latest = latest_per_pair(records)

    groups = {(r.product_id, r.market_id) for r in records}
    assert set(latest) == groups
    for (product_id, market_id), winner in latest.items():
        same_pair = [r for r in records if (r.product_id, r.market_id) == (product_id, market_id)]
        assert all(winner.collected_at >= r.collected_at for r in same_pair)


def test_equal_timestamps_break_ties_by_highest_id():
    first = record(MILK, CENTRAL, price=1.0)
    second = record(MILK, CENTRAL, price=2.0)
    expected = max(first, second, key=lambda r: str(r.id))

    assert latest_per_pair([first, second])[(MILK.id, CENTRAL.id)] is expected
    assert latest_per_pair([second, first])[(MILK.id, CENTRAL.id)] is expected


def test_free_text_markets_group_by_normalized_name():
    old = record(MILK, market_name="Feira  do Bairro", days_ago=3)
    new = record(MILK, market_name="feira do bairro", days_ago=1)

    latest = latest_per_pair([old, new])

    assert market_key(old) == market_key(new) == "feira do bairro"
    assert list(latest.values()) == [new]


# -------- Filtering --------


def test_city_then_neighborhood_equals_combined_predicate():
    rng = random.Random(11)
    records = [
        record(rng.choice([MILK, RICE, COFFEE]), rng.choice([CENTRAL, BAIRRO, PAULISTA, None]),
               market_name="Feira")
        for _ in range(40)
    ]
    cities = ["", "Campinas", "São Paulo", "Recife"]
    neighborhoods = ["", "Cambuí", "Taquaral", "Bela Vista"]

    for city, neighborhood in itertools.product(cities, neighborhoods):
        by_city = filter_records(records, PRODUCTS, MARKETS, city=city)
        staged = filter_records(by_city, PRODUCTS, MARKETS, city=city, neighborhood=neighborhood)
        combined = [
            r for r in records
            if matches_city(MARKETS.get(r.market_id), city)
            and matches_neighborhood(MARKETS.get(r.market_id), city, neighborhood)
        ]
        assert staged == combined
        assert staged == filter_records(
            records, PRODUCTS, MARKETS, city=city, neighborhood=neighborhood
        )


def test_search_matches_name_or_brand_case_insensitive():
    records = [record(MILK, CENTRAL), record(RICE, CENTRAL), record(COFFEE, CENTRAL)]

    by_name = filter_records(records, PRODUCTS, MARKETS, search="LEITE")
    by_brand = filter_records(records, PRODUCTS, MARKETS, search="camil")

    assert [r.product_id for r in by_name] == [MILK.id]
    assert [r.product_id for r in by_brand] == [RICE.id]


def test_neighborhood_ignored_without_city():
    records = [record(MILK, CENTRAL), record(MILK, PAULISTA)]

    assert filter_records(records, PRODUCTS, MARKETS, neighborhood="Cambuí") == records


def test_free_text_market_only_kept_without_city():
    free = record(MILK, market_name="Feira")
    known = record(MILK, CENTRAL)

    assert filter_records([free, known], PRODUCTS, MARKETS) == [free, known]
    assert filter_records([free, known], PRODUCTS, MARKETS, city="Campinas") == [known]


def test_unknown_product_is_dropped():
    orphan = PriceRecord(
        id=uuid.uuid4(), product_id=uuid.uuid4(), market_id=CENTRAL.id,
        price=1.0, collected_at=NOW, user_id=uuid.uuid4(), origin="auditor",
    )

    assert filter_records([orphan], PRODUCTS, MARKETS) == []


def test_location_choices():
    markets = [CENTRAL, BAIRRO, PAULISTA]

    assert city_choices(markets) == ["Campinas", "São Paulo"]
    assert neighborhood_choices(markets, "Campinas") == ["Cambuí", "Taquaral"]
    assert neighborhood_choices(markets, "") == []


# -------- Aggregates --------


def test_count_by_origin_always_has_both_keys():
    assert count_by_origin([]) == {"auditor": 0, "contributor": 0}
    assert count_by_origin(
        [record(MILK, CENTRAL, origin="auditor"), record(MILK, CENTRAL), record(RICE, CENTRAL)]
    ) == {"auditor": 1, "contributor": 2}


def test_average_price_by_product():
    records = [record(MILK, CENTRAL, price=4.0), record(MILK, BAIRRO, price=5.0),
               record(RICE, CENTRAL, price=20.333)]

    averages = average_price_by_product(records)

    assert averages == {MILK.id: 4.5, RICE.id: 20.33}


def test_top_products_by_count_is_stable():
    records = [
        record(RICE, CENTRAL), record(MILK, CENTRAL), record(MILK, BAIRRO),
        record(COFFEE, CENTRAL), record(RICE, BAIRRO), record(MILK, PAULISTA),
    ]

    assert top_products_by_count(records, 2) == [(MILK.id, 3), (RICE.id, 2)]
    assert top_products_by_count(records, 10)[-1] == (COFFEE.id, 1)
