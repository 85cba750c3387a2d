"""Scheduler trigger for the birthday automation"""

import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query

from api.core.dependencies import get_birthday_automation, verify_cron_request
from api.services import MODE_SCHEDULED, BirthdayAutomation
from api.services.birthday_automation import AUTOMATION_MODES

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cron", tags=["cron"])


@router.get("/birthday-automation")
async def run_birthday_automation(
    mode: str = Query(MODE_SCHEDULED),
    date_: date | None = Query(None, alias="date"),
    test_mode: bool = Depends(verify_cron_request),
    automation: BirthdayAutomation = Depends(get_birthday_automation),
) -> dict:
    """Run one automation pass and return its report."""
    if mode not in AUTOMATION_MODES:
        raise HTTPException(status_code=400, detail=f"Invalid mode: {mode}")
    if date_ is not None and not test_mode:
        raise HTTPException(status_code=400, detail="date override requires test mode")

    try:
        report = await automation.run(mode=mode, reference_date=date_)
    except Exception as e:
        logger.exception(f"Birthday automation failed: {e}")
        raise HTTPException(status_code=500, detail="Internal server error") from None

    return {
        "success": True,
        "message": report.summary,
        "test_mode": test_mode,
        "results": report.to_dict(),
    }
