"""
SwapStation - FastAPI Application
Booking, station and kiosk API for EV battery swapping
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging

from swapstation.database import SessionLocal, init_db
from swapstation.config import settings
from swapstation.core.exceptions import register_exception_handlers
from swapstation.core.timeutils import isoformat_utc, utcnow
from swapstation.services import booking_service
from swapstation.services.kiosk import KioskManager
from swapstation.services.reservation_sweeper import ReservationSweeper
from swapstation.services.reservation_timer import ReservationRegistry

from swapstation.api.routes import (
    health,
    auth,
    vehicles,
    stations,
    bookings,
    subscriptions,
    kiosk,
)

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle startup and shutdown events."""
    logger.info("Starting %s...", settings.app_name)

    init_db()
    logger.info("Database initialized")

    reservations = ReservationRegistry(
        on_activate=booking_service.activate_reservation,
        on_expire=booking_service.expire_reservation,
    )
    db = SessionLocal()
    try:
        booking_service.restore_reservations(db, reservations)
    finally:
        db.close()

    kiosks = KioskManager(on_swap_completed=reservations.complete)
    kiosks.start()

    sweeper = None
    if settings.reservation_sweeper_enabled:
        sweeper = ReservationSweeper(settings.reservation_sweep_cron)
        sweeper.start()

    app.state.reservations = reservations
    app.state.kiosks = kiosks
    app.state.sweeper = sweeper
    logger.info("API running on %s environment", settings.app_env)
    yield

    if sweeper is not None:
        await sweeper.stop()
    await kiosks.stop()
    reservations.close_all()
    logger.info("Shutting down %s...", settings.app_name)


app = FastAPI(
    title=settings.app_name,
    description="Backend API for EV battery swap booking and station kiosks",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


@app.get("/")
async def root() -> dict:
    return {
        "name": settings.app_name,
        "environment": settings.app_env,
        "timestamp": isoformat_utc(utcnow()),
    }


app.include_router(health.router, prefix="/api", tags=["Health"])
app.include_router(auth.router, prefix="/api/auth", tags=["Auth"])
app.include_router(vehicles.router, prefix="/api/EV", tags=["Vehicles"])
app.include_router(stations.router, prefix="/api/station", tags=["Stations"])
app.include_router(bookings.router, prefix="/api/booking", tags=["Bookings"])
app.include_router(
    subscriptions.plans_router, prefix="/api/subscription-plans", tags=["Subscriptions"]
)
app.include_router(
    subscriptions.router, prefix="/api/subscriptions", tags=["Subscriptions"]
)
app.include_router(kiosk.router, prefix="/api/kiosk", tags=["Kiosk"])
