"""API Routers package

Routers are organized by feature domain.
"""

from . import birthday_router, cron_router, whatsapp_router

__all__ = [
    "birthday_router",
    "cron_router",
    "whatsapp_router",
]
