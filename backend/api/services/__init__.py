"""Services layer - Business logic

Services are initialized with their repositories and clients and are handed
to routers through dependency injection.
"""

from .auth_service import AuthService
from .birthday_automation import (
    MODE_DAILY,
    MODE_SCHEDULED,
    AutomationReport,
    BirthdayAutomation,
    TenantBatchRunner,
)
from .birthday_sender import BirthdaySender, SendOutcome
from .birthday_service import BirthdayService, BulkSendResult
from .duplicate_guard import DuplicateGuard
from .errors import (
    BirthdayError,
    CustomerNotFoundError,
    MissingPhoneError,
    NoActiveConnectionError,
    NoCustomersError,
)
from .pacing import MessagePacer
from .whatsapp_gateway import DispatchResult, WhatsAppGatewayClient
from .whatsapp_service import InvalidSettingsError, WhatsAppService

__all__ = [
    "MODE_DAILY",
    "MODE_SCHEDULED",
    "AuthService",
    "AutomationReport",
    "BirthdayAutomation",
    "BirthdayError",
    "BirthdaySender",
    "BirthdayService",
    "BulkSendResult",
    "CustomerNotFoundError",
    "DispatchResult",
    "DuplicateGuard",
    "InvalidSettingsError",
    "MessagePacer",
    "MissingPhoneError",
    "NoActiveConnectionError",
    "NoCustomersError",
    "SendOutcome",
    "TenantBatchRunner",
    "WhatsAppGatewayClient",
    "WhatsAppService",
]
