# salon_booking/data.py

import os

salon_settings = {
    "timezone": os.environ.get("SALON_TIMEZONE", "Europe/London"),
    "slot_minutes": int(os.environ.get("SALON_SLOT_MINUTES", "15")),
    # public bookings only; staff bookings just exclude the past
    "min_notice_hours": int(os.environ.get("SALON_MIN_NOTICE_HOURS", "24")),
    "chemical_gap_minutes": int(os.environ.get("SALON_CHEMICAL_GAP_MINUTES", "30")),
}

# key -> catalog entry; durations in minutes, prices in GBP (None = TBA)
SERVICES = {
    "cut_and_finish": {"name": "Cut & Finish", "category": "Cutting", "duration": 45, "price": 38.0},
    "gents_cut": {"name": "Gents Cut", "category": "Cutting", "duration": 30, "price": 22.0},
    "blow_dry": {"name": "Blow Dry", "category": "Styling", "duration": 30, "price": 25.0},
    "fringe_trim": {"name": "Fringe Trim", "category": "Cutting", "duration": 15, "price": 8.0},
    "root_tint": {"name": "Root Tint", "category": "Colour", "duration": 60, "price": 55.0, "is_chemical": True},
    "half_head_foils": {"name": "Half Head Foils", "category": "Colour", "duration": 90, "price": 85.0, "is_chemical": True},
    "toner": {"name": "Toner", "category": "Colour", "duration": 30, "price": 20.0, "is_chemical": True},
    "olaplex_treatment": {"name": "Olaplex Treatment", "category": "Treatments", "duration": 30, "price": None},
}
