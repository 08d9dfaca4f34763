# salon_booking/main.py

import logging
import os
import sys
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI

from salon_booking.db import create_db_and_tables
from salon_booking.routers import bookings_routes, staff_routes

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False):
    """Configures logging to stderr with local time."""
    level = logging.DEBUG if verbose else logging.INFO
    handler = logging.StreamHandler(sys.stderr)
    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s]: %(name)s:%(lineno)d | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    formatter.converter = time.localtime
    handler.setFormatter(formatter)

    logging.basicConfig(
        level=level,
        handlers=[handler],
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(os.environ.get("SALON_VERBOSE", "") == "1")
    create_db_and_tables()
    logger.info("Salon booking API ready")
    yield


app = FastAPI(title="Salon Booking API", lifespan=lifespan)

app.include_router(staff_routes.router)
app.include_router(bookings_routes.router)


@app.get("/health")
def health_check():
    return {"status": "ok"}
