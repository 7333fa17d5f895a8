from app.models.user import User
from app.models.client import Client
from app.models.appointment import Appointment, AppointmentPublic
from app.models.payment import Payment

__all__ = [
    "User",
    "Client",
    "Appointment",
    "AppointmentPublic",
    "Payment",
]
