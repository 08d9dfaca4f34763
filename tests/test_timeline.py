from datetime import datetime

import pytest

from salon_booking.data import SERVICES
from salon_booking.schemas import ServiceItem, ServiceOverride
from salon_booking.timeline import (
    block_minutes,
    build_timeline,
    effective_price_and_duration,
    is_chemical,
    resolve_services,
    span,
)


def svc(key, duration, category="Cutting", name=None, price=20.0, is_chemical=False):
    return ServiceItem(key=key, name=name or key, category=category, duration=duration, price=price, is_chemical=is_chemical)


def test_two_services_are_chained_back_to_back():
    start = datetime(2026, 10, 20, 14, 0)
    rows = build_timeline([svc("cut", 30), svc("blow_dry", 45, category="Styling")], start, client_id="c1")

    assert [(r.start, r.end) for r in rows] == [
        (datetime(2026, 10, 20, 14, 0), datetime(2026, 10, 20, 14, 30)),
        (datetime(2026, 10, 20, 14, 30), datetime(2026, 10, 20, 15, 15)),
    ]
    assert [r.duration for r in rows] == [30, 45]
    assert all(r.client_id == "c1" for r in rows)
    assert rows[0].service_id == "cut"


def test_processing_gap_after_chemical_service():
    start = datetime(2026, 10, 20, 10, 0)
    rows = build_timeline(
        [svc("tint", 60, category="Colour", name="Root Tint"), svc("cut", 30)],
        start,
        chemical_gap_minutes=30,
    )
    assert rows[0].end == datetime(2026, 10, 20, 11, 0)
    assert rows[1].start == datetime(2026, 10, 20, 11, 30)
    assert rows[1].end == datetime(2026, 10, 20, 12, 0)


def test_block_minutes_matches_timeline_span():
    services = [svc("tint", 60, category="Colour", name="Root Tint"), svc("cut", 30)]
    rows = build_timeline(services, datetime(2026, 10, 20, 10, 0), chemical_gap_minutes=30)
    assert block_minutes(services, 30) == 120
    assert span(rows).minutes == 120


def test_trailing_chemical_service_adds_no_gap():
    services = [svc("cut", 30), svc("toner", 30, category="Colour", name="Toner")]
    assert block_minutes(services, 30) == 60


def test_is_chemical():
    assert is_chemical(svc("x", 30, is_chemical=True))
    assert is_chemical(svc("olaplex", 30, category="Treatments"))
    assert is_chemical(svc("balayage", 30, category="Other", name="Balayage"))
    assert not is_chemical(svc("cut", 30, category="Cutting", name="Gents Cut"))


def test_override_wins_when_usable():
    base = svc("cut", 30, price=20.0)
    assert effective_price_and_duration(base, [ServiceOverride(service_key="cut", duration=45, price=30.0)]) == (30.0, 45)
    assert effective_price_and_duration(base, [ServiceOverride(service_key="cut", duration=0)]) == (20.0, 30)
    assert effective_price_and_duration(base, [ServiceOverride(service_key="other", duration=90)]) == (20.0, 30)
    assert effective_price_and_duration(base) == (20.0, 30)


def test_resolve_services_from_catalog():
    items = resolve_services(
        ["gents_cut", "blow_dry"],
        SERVICES,
        [ServiceOverride(service_key="blow_dry", duration=45)],
    )
    assert [i.key for i in items] == ["gents_cut", "blow_dry"]
    assert [i.duration for i in items] == [30, 45]
    assert items[1].price == SERVICES["blow_dry"]["price"]


def test_resolve_unknown_service():
    with pytest.raises(ValueError):
        resolve_services(["perm_deluxe"], SERVICES)
