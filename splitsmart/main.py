import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from splitsmart.core.config import settings
from splitsmart.core.exceptions import ConcurrencyError, InvariantViolation, NotFoundError, ValidationError
from splitsmart.db.database import Base, engine, check_db_connection
from splitsmart.api.v1.routes.groups import router as groups_router
from splitsmart.api.v1.routes.ledger import router as ledger_router
from splitsmart.api.v1.routes.me import router as me_router

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)

    # Membership facts arrive from the identity service over RabbitMQ
    if settings.RABBITMQ_ENABLED:
        from splitsmart.messaging.background_consumer import (
            start_background_consumer, stop_background_consumer
        )
        start_background_consumer()
        try:
            yield
        finally:
            stop_background_consumer()
    else:
        yield


app = FastAPI(
    title="SplitSmart - Ledger Service",
    description="Records group expenses and settlements, computes balances and settlement suggestions",
    version="1.0.0",
    lifespan=lifespan,
)


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"detail": exc.detail})


@app.exception_handler(NotFoundError)
async def not_found_error_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": exc.detail})


@app.exception_handler(ConcurrencyError)
async def concurrency_error_handler(request: Request, exc: ConcurrencyError):
    logger.warning(f"Concurrency conflict on {request.url.path}: {exc.detail}")
    return JSONResponse(status_code=409, content={"detail": exc.detail}, headers={"Retry-After": "1"})


@app.exception_handler(InvariantViolation)
async def invariant_violation_handler(request: Request, exc: InvariantViolation):
    logger.critical(f"Invariant violation on {request.url.path}: {exc.detail}")
    return JSONResponse(status_code=500, content={"detail": "Internal ledger error"})


app.include_router(groups_router)
app.include_router(ledger_router)
app.include_router(me_router)


@app.get("/")
def read_root():
    return {"message": "SplitSmart Ledger Service API", "version": "1.0.0"}


@app.get("/health")
def health_check():
    if not check_db_connection():
        return JSONResponse(status_code=503, content={"status": "unhealthy"})
    return {"status": "healthy"}
