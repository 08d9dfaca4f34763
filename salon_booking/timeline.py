# salon_booking/timeline.py
"""
Multi-service checkout: one booking row per service, chained back to back,
with a processing gap after chemical services.
"""

from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

from .schemas import BookingDraft, BookingSource, Interval, ServiceItem, ServiceOverride

CHEMICAL_KEYWORDS = (
    "tint", "colour", "color", "bleach", "toner", "gloss", "highlights",
    "balayage", "foils", "perm", "relaxer", "keratin", "chemical", "straightening",
)


def is_chemical(service: ServiceItem) -> bool:
    if service.is_chemical:
        return True
    category = (service.category or "").lower()
    if "treat" in category:
        return True
    text = f"{service.name} {category}".lower()
    return any(k in text for k in CHEMICAL_KEYWORDS)


def effective_price_and_duration(
    service: ServiceItem,
    overrides: Iterable[ServiceOverride] = (),
) -> Tuple[Optional[float], int]:
    """A stylist's override wins when it carries a usable value."""
    price, duration = service.price, service.duration
    for o in overrides:
        if o.service_key != service.key:
            continue
        if o.price is not None:
            price = o.price
        if o.duration is not None and o.duration > 0:
            duration = o.duration
        break
    return price, duration


def resolve_services(
    keys: Iterable[str],
    catalog: Dict[str, dict],
    overrides: Iterable[ServiceOverride] = (),
) -> List[ServiceItem]:
    """Catalog entries for keys, in order, with the stylist's overrides applied."""
    overrides = list(overrides)
    services = []
    for key in keys:
        entry = catalog.get(key)
        if entry is None:
            raise ValueError(f"Unknown service: {key}")
        item = ServiceItem(key=key, **entry)
        price, duration = effective_price_and_duration(item, overrides)
        services.append(item.model_copy(update={"price": price, "duration": duration}))
    return services


def block_minutes(services: Iterable[ServiceItem], chemical_gap_minutes: int = 30) -> int:
    """Minutes from the first service's start to the last one's end."""
    offset = 0
    end = 0
    for svc in services:
        end = offset + svc.duration
        offset = end + (chemical_gap_minutes if is_chemical(svc) else 0)
    return end


def build_timeline(
    services: Iterable[ServiceItem],
    start: datetime,
    client_id: Optional[str] = None,
    source: BookingSource = BookingSource.staff,
    chemical_gap_minutes: int = 30,
) -> List[BookingDraft]:
    drafts = []
    current = start
    for svc in services:
        end = current + timedelta(minutes=svc.duration)
        drafts.append(BookingDraft(
            title=svc.name,
            category=svc.category,
            service_id=svc.key,
            client_id=client_id,
            start=current,
            end=end,
            duration=svc.duration,
            price=svc.price,
            source=source,
        ))
        current = end
        if is_chemical(svc):
            current += timedelta(minutes=chemical_gap_minutes)
    return drafts


def span(rows: List) -> Interval:
    return Interval(start=min(r.start for r in rows), end=max(r.end for r in rows))
