"""Run the birthday automation once and print the JSON report.

Usage:
    python scripts/run_birthday_automation.py                   # scheduled mode
    python scripts/run_birthday_automation.py --mode daily
    python scripts/run_birthday_automation.py --mode daily --date 2026-03-01
"""

import argparse
import asyncio
import json
import logging
import sys
from datetime import date

from dotenv import load_dotenv

from api.core.config import get_settings
from api.core.dependencies import build_birthday_automation
from api.core.logging import setup_logging
from api.services import MODE_SCHEDULED, WhatsAppGatewayClient
from api.services.birthday_automation import AUTOMATION_MODES
from shared.database import DatabaseManager, PoolConfig

logger = logging.getLogger("run_birthday_automation")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Send today's birthday messages")
    parser.add_argument("--mode", choices=AUTOMATION_MODES, default=MODE_SCHEDULED)
    parser.add_argument(
        "--date", type=date.fromisoformat, default=None, help="Reference date (YYYY-MM-DD)"
    )
    return parser.parse_args(argv)


async def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    load_dotenv()
    settings = get_settings()
    setup_logging(settings)

    db = DatabaseManager(settings.database_url, PoolConfig.for_service("worker"))
    gateway = WhatsAppGatewayClient(
        base_url=settings.whatsapp_api_endpoint, timeout=settings.gateway_timeout
    )
    try:
        await db.connect()
        automation = build_birthday_automation(db.pool, gateway, settings)
        report = await automation.run(mode=args.mode, reference_date=args.date)
    except Exception as e:
        logger.exception(f"Birthday automation failed: {e}")
        return 1
    finally:
        await gateway.close()
        await db.disconnect()

    print(json.dumps(report.to_dict(), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
