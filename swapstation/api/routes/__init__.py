"""
API Routes Package
"""
from . import (
    health,
    auth,
    vehicles,
    stations,
    bookings,
    subscriptions,
    kiosk,
)
