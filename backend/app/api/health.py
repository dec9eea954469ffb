# backend/app/api/health.py
"""
Health Check Endpoints

Reports database connectivity and which integrations are configured
(webhook trust mode, enrichment, SMS alerts). Never reports secret values.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import get_config_status
from app.database import get_db
from app.utils.helpers import utc_now
from app.utils.logger import logger

router = APIRouter(prefix="/api/health", tags=["health"])


def check_database(db: Session) -> Dict[str, Any]:
    try:
        result = db.execute(text("SELECT 1 as test")).fetchone()
        return {
            "status": "healthy" if result else "unhealthy",
            "message": "Database connection successful",
        }
    except SQLAlchemyError as e:
        logger.error(f"[Health Check] Database failed: {e}")
        return {
            "status": "unhealthy",
            "message": f"Database connection failed: {str(e)[:200]}",
        }


@router.get("")
def health_detailed(db: Session = Depends(get_db)):
    config_status = get_config_status()
    database = check_database(db)

    status = "healthy"
    if database["status"] != "healthy":
        status = "unhealthy"
    elif config_status["webhook_trust_mode"] == "unsigned" or not config_status["sms_alerts_configured"]:
        status = "degraded"

    return {
        "status": status,
        "timestamp": utc_now().isoformat(),
        "checks": {
            "database": database,
            "config": config_status,
        },
    }
