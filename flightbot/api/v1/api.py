from fastapi import APIRouter
from flightbot.api.v1.routes.chat import router as chat_router
from flightbot.api.v1.routes.bookings import router as bookings_router

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(chat_router)
api_router.include_router(bookings_router)
