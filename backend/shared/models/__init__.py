"""Shared data models for the birthday CRM backend."""

from .birthday import BirthdayMessage, NewBirthdayMessage
from .customer import Customer
from .whatsapp import WhatsAppConnection, WhatsAppSettings

__all__ = [
    "BirthdayMessage",
    "Customer",
    "NewBirthdayMessage",
    "WhatsAppConnection",
    "WhatsAppSettings",
]
