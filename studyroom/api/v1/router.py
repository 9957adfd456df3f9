from fastapi import APIRouter

# Reservations lifecycle & queries
from studyroom.api.v1.reservations import router as reservations_router

# Seat status registry
from studyroom.api.v1.seats import router as seats_router

# Read-side statistics
from studyroom.api.v1.statistics import router as statistics_router

# Admin
from studyroom.api.v1.admin import router as admin_router

api_router = APIRouter()

api_router.include_router(reservations_router)
api_router.include_router(seats_router)
api_router.include_router(statistics_router)

# --- Admin ---
api_router.include_router(admin_router)
