from fastapi import APIRouter
from app.core.exceptions import ErrorResponse
from app.api.v1.auth import routes as auth
from app.api.v1.profiles import routes as profiles
from app.api.v1.appointments import routes as appointments
from app.api.v1.calendar import routes as calendar
from app.api.v1.documents import routes as documents
from app.api.v1.chat import routes as chat
from app.api.v1.notifications import routes as notifications

api_router = APIRouter(responses={
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
})
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(profiles.router, prefix="/profiles", tags=["profiles"])
api_router.include_router(appointments.router, prefix="/appointments", tags=["appointments"])
api_router.include_router(calendar.router, prefix="/calendar", tags=["calendar"])
api_router.include_router(documents.router, prefix="/documents", tags=["documents"])
api_router.include_router(chat.router, prefix="/chat", tags=["chat"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
