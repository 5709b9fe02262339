"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import Annotated, AsyncGenerator

from fastapi import Depends, FastAPI
from sqlmodel import Session

from milkpool.api.v1.router import router as api_v1_router
from milkpool.config import settings
from milkpool.database import get_session
from milkpool.domain.services.pool_service import PoolService
from milkpool.logging_config import configure_logging
from milkpool.middleware import CorrelationIdMiddleware
from milkpool.schemas.pool import PoolHealthResponse


@asynccontextmanager
async def lifespan(application: FastAPI) -> AsyncGenerator[None, None]:
    """Configure application resources on startup."""
    configure_logging(log_level=settings.log_level)
    yield


app = FastAPI(
    title="Milk Pool Ledger API",
    description="Milk collection pooling, batch consumption and pool reset",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Attach correlation ID middleware (must be added before routes)
app.add_middleware(CorrelationIdMiddleware)

app.include_router(api_v1_router)


@app.get("/health", tags=["health"])
def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok"}


@app.get("/health/pool", response_model=PoolHealthResponse, tags=["health"])
def pool_health_check(
    session: Annotated[Session, Depends(get_session)],
) -> PoolHealthResponse:
    """Report whether exactly one milk pool is active."""
    health = PoolService(session).check_pool_invariant()
    return PoolHealthResponse.model_validate(health)


def run() -> None:
    """Serve the API with uvicorn using the configured host and port."""
    import uvicorn

    uvicorn.run(
        "milkpool.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
        workers=None if settings.api_reload else settings.api_workers,
        log_config=None,
    )


if __name__ == "__main__":
    run()
