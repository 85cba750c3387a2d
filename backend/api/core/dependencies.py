"""Dependency injection utilities for FastAPI"""

import hmac
import logging

import asyncpg
from fastapi import Cookie, Depends, Header, HTTPException

from api.core.config import Settings, get_settings
from api.core.database import get_database_manager
from api.services import (
    AuthService,
    BirthdayAutomation,
    BirthdaySender,
    BirthdayService,
    DuplicateGuard,
    MessagePacer,
    TenantBatchRunner,
    WhatsAppGatewayClient,
    WhatsAppService,
)
from shared.repositories import (
    BirthdayMessageRepository,
    CustomerRepository,
    WhatsAppConnectionRepository,
    WhatsAppSettingsRepository,
)

logger = logging.getLogger(__name__)


# ============================================
# Client / Pool Dependencies
# ============================================


def get_auth_service() -> AuthService:
    """Get AuthService instance (dependency injection)"""
    settings = get_settings()
    return AuthService(
        secret_key=settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
        audience=settings.jwt_audience or None,
    )


_gateway: WhatsAppGatewayClient | None = None


def get_gateway_client() -> WhatsAppGatewayClient:
    """Get shared WhatsAppGatewayClient singleton (connection reuse)."""
    global _gateway
    if _gateway is None:
        settings = get_settings()
        _gateway = WhatsAppGatewayClient(
            base_url=settings.whatsapp_api_endpoint,
            timeout=settings.gateway_timeout,
        )
    return _gateway


async def close_gateway_client() -> None:
    """Close the shared WhatsAppGatewayClient. Call on app shutdown."""
    global _gateway
    if _gateway is not None:
        await _gateway.close()
        _gateway = None


def get_db_pool() -> asyncpg.Pool:
    db_manager = get_database_manager()
    if not db_manager.is_connected:
        raise HTTPException(status_code=503, detail="Database not ready")
    return db_manager.pool


# ============================================
# Service Builders
# ============================================


def build_birthday_sender(
    pool: asyncpg.Pool, gateway: WhatsAppGatewayClient, settings: Settings
) -> BirthdaySender:
    return BirthdaySender(
        guard=DuplicateGuard(BirthdayMessageRepository(pool)),
        connections=WhatsAppConnectionRepository(pool),
        gateway=gateway,
        country_code=settings.country_code,
    )


def build_tenant_runner(
    pool: asyncpg.Pool, gateway: WhatsAppGatewayClient, settings: Settings
) -> TenantBatchRunner:
    return TenantBatchRunner(
        connections=WhatsAppConnectionRepository(pool),
        settings=WhatsAppSettingsRepository(pool),
        sender=build_birthday_sender(pool, gateway, settings),
        pacer=MessagePacer(settings.automation_message_delay),
        send_window_minutes=settings.send_window_minutes,
        default_timezone=settings.automation_timezone,
    )


def build_birthday_automation(
    pool: asyncpg.Pool, gateway: WhatsAppGatewayClient, settings: Settings
) -> BirthdayAutomation:
    """Wire the scheduler entry point; shared by the cron route and the CLI."""
    return BirthdayAutomation(
        customers=CustomerRepository(pool),
        runner=build_tenant_runner(pool, gateway, settings),
        timezone=settings.automation_timezone,
        max_errors=settings.max_reported_errors,
    )


def get_birthday_automation(
    pool: asyncpg.Pool = Depends(get_db_pool),
    gateway: WhatsAppGatewayClient = Depends(get_gateway_client),
) -> BirthdayAutomation:
    return build_birthday_automation(pool, gateway, get_settings())


def get_birthday_service(
    pool: asyncpg.Pool = Depends(get_db_pool),
    gateway: WhatsAppGatewayClient = Depends(get_gateway_client),
) -> BirthdayService:
    settings = get_settings()
    return BirthdayService(
        customers=CustomerRepository(pool),
        connections=WhatsAppConnectionRepository(pool),
        settings=WhatsAppSettingsRepository(pool),
        records=BirthdayMessageRepository(pool),
        sender=build_birthday_sender(pool, gateway, settings),
        runner=build_tenant_runner(pool, gateway, settings),
        bulk_pacer=MessagePacer(settings.bulk_message_delay),
        timezone=settings.automation_timezone,
    )


def get_whatsapp_service(
    pool: asyncpg.Pool = Depends(get_db_pool),
    gateway: WhatsAppGatewayClient = Depends(get_gateway_client),
) -> WhatsAppService:
    return WhatsAppService(
        connections=WhatsAppConnectionRepository(pool),
        settings=WhatsAppSettingsRepository(pool),
        gateway=gateway,
        country_code=get_settings().country_code,
    )


# ============================================
# Authentication Dependencies
# ============================================


def _bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def get_current_user_id(
    authorization: str | None = Header(None),
    auth_token: str | None = Cookie(None),
) -> str:
    """Return the tenant's user id (JWT ``sub``) from a Bearer header or cookie"""
    token = _bearer_token(authorization) or auth_token
    if not token:
        logger.warning("No auth token provided")
        raise HTTPException(status_code=401, detail="Unauthorized")

    payload = get_auth_service().verify_token(token)
    if not payload:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return str(payload["sub"])


async def verify_cron_request(
    authorization: str | None = Header(None),
    x_test_mode: str | None = Header(None),
) -> bool:
    """Authorize the scheduler trigger. Returns True when admitted via test mode."""
    settings = get_settings()

    if settings.allow_cron_test_mode and (x_test_mode or "").lower() == "true":
        logger.info("Cron request admitted in test mode")
        return True

    token = _bearer_token(authorization)
    if (
        not settings.cron_secret
        or token is None
        or not hmac.compare_digest(token.encode(), settings.cron_secret.encode())
    ):
        logger.warning("Rejected cron request with missing or invalid secret")
        raise HTTPException(status_code=401, detail="Unauthorized")
    return False
