"""Shared repository layer for the birthday CRM backend."""

from .birthday import BirthdayMessageRepository
from .customer import CustomerRepository
from .whatsapp import WhatsAppConnectionRepository, WhatsAppSettingsRepository

__all__ = [
    "BirthdayMessageRepository",
    "CustomerRepository",
    "WhatsAppConnectionRepository",
    "WhatsAppSettingsRepository",
]
