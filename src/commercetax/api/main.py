import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from commercetax.api.backfill import router as backfill_router
from commercetax.api.configuration import router as configuration_router
from commercetax.api.filings import router as filings_router
from commercetax.api.notifications import router as notifications_router
from commercetax.api.rectifications import router as rectifications_router
from commercetax.api.trades import router as trades_router
from commercetax.container import Container
from commercetax.exceptions import (
    CommerceTaxError,
    ConfigurationMissingError,
    DuplicateFilingError,
    FilingNotFoundError,
    PersistenceError,
    TradeNotFoundError,
    ValidationError,
)

logger = logging.getLogger("commercetax.api")

ERROR_STATUS = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    FilingNotFoundError: status.HTTP_404_NOT_FOUND,
    TradeNotFoundError: status.HTTP_404_NOT_FOUND,
    DuplicateFilingError: status.HTTP_409_CONFLICT,
    ConfigurationMissingError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    PersistenceError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    container = Container()
    app.state.container = container
    settings = container.settings()
    scheduler = container.scheduler()
    if settings.scheduler_enabled:
        await scheduler.start()
    yield
    await scheduler.shutdown()
    engine = container.engine()
    await engine.dispose()


app = FastAPI(title="CommerceTax", version="0.1.0", lifespan=lifespan)


@app.exception_handler(CommerceTaxError)
async def domain_error_handler(request: Request, exc: CommerceTaxError):
    status_code = ERROR_STATUS.get(type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)
    if status_code >= 500:
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc)
        detail = "Could not complete the operation, try again later"
        if isinstance(exc, ConfigurationMissingError):
            detail = str(exc)
    else:
        detail = str(exc)
    return JSONResponse(status_code=status_code, content={"detail": detail, "error": exc.code})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    tb = traceback.format_exception(type(exc), exc, exc.__traceback__)
    logger.error("Unhandled error on %s %s:\n%s", request.method, request.url.path, "".join(tb))
    return JSONResponse(status_code=500, content={"detail": str(exc), "error": "server"})


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(configuration_router)
app.include_router(filings_router)
app.include_router(rectifications_router)
app.include_router(trades_router)
app.include_router(backfill_router)
app.include_router(notifications_router)


@app.get("/api/health")
async def health():
    return {"status": "ok", "version": "0.1.0"}
