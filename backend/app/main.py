from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app import models  # noqa: F401  (register tables on Base.metadata)
from app.config import settings
from app.database import Base, engine
from app.api import call_complete, call_sessions, cei, health
from app.utils.errors import AuthenticationFailure
from app.utils.logger import logger

app = FastAPI(title="CEI Call Scoring Service", version="1.0.0")


@app.on_event("startup")
async def startup_event():
    logger.info("CEI Call Scoring Service Starting...")

    from app.config import validate_config, ConfigValidationError

    try:
        result = validate_config(raise_on_error=settings.ENVIRONMENT == "production")
        for warning in result.get("warnings", []):
            logger.warning(f"Config warning: {warning}")
        if result.get("errors"):
            for error in result["errors"]:
                logger.error(f"Config error: {error}")
    except ConfigValidationError as e:
        logger.critical(f"FATAL: {e}")
        raise SystemExit(1)

    logger.info(f"Webhook trust mode: {settings.webhook_trust_mode.upper()}")

    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created/verified")


@app.exception_handler(AuthenticationFailure)
async def authentication_failure_handler(request: Request, exc: AuthenticationFailure):
    logger.warning(f"Rejected webhook from {request.client.host if request.client else 'unknown'}: {exc}")
    return JSONResponse(
        status_code=401,
        content={
            "ok": False,
            "success": False,
            "message": str(exc),
            "session_id": None,
            "score_record_id": None,
            "error": "authentication_failed",
        },
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(call_complete.router)
app.include_router(call_sessions.router)
app.include_router(cei.router)
app.include_router(health.router)


@app.get("/")
async def root():
    return {"message": "CEI Call Scoring API", "status": "running", "version": "1.0.0"}


@app.get("/health/simple")
async def health_simple():
    """Simple health check for load balancers."""
    return {"status": "ok"}
