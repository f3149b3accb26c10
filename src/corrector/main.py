import logging
from typing import Any, Callable, TypeVar

from fastapi import FastAPI, HTTPException
from fastapi.responses import PlainTextResponse

from corrector.api.correction import router as correction_router
from corrector.config import get_settings
from corrector.engine import get_engine
from corrector.logging_config import configure_logging
from corrector.storage import get_result_store
from corrector.telemetry import emit_app_startup_event

configure_logging()

LOGGER = logging.getLogger(__name__)

app = FastAPI(title="Manuscript Corrector API")
app.include_router(correction_router)


@app.on_event("startup")
async def _startup() -> None:
    """Log the effective configuration once the server is up."""

    emit_app_startup_event()
    settings = get_settings()
    LOGGER.info(
        "Correction engine=%s model=%s store=%s",
        settings.engine_backend,
        settings.model,
        settings.result_store,
    )


T = TypeVar("T")


def _resolve_dependency(factory: Callable[[], T]) -> T:
    """Resolve a dependency while respecting FastAPI overrides."""

    override: Any | None = app.dependency_overrides.get(factory)
    resolved: Any = override if override is not None else factory
    return resolved() if callable(resolved) else resolved


@app.get("/", response_class=PlainTextResponse)
def read_root() -> str:
    """Healthcheck endpoint for the service."""
    return "ok"


@app.get("/healthz", response_class=PlainTextResponse)
def healthcheck() -> str:
    """Liveness probe used by container orchestrators."""
    return "ok"


@app.get("/readyz", response_class=PlainTextResponse)
def readiness_probe() -> str:
    """Readiness probe that ensures the engine and result store can be built."""

    errors: list[str] = []

    try:
        _resolve_dependency(get_engine)
    except Exception as exc:
        errors.append(f"engine_unavailable: {exc}")

    try:
        _resolve_dependency(get_result_store)
    except Exception as exc:
        errors.append(f"result_store_unavailable: {exc}")

    if errors:
        raise HTTPException(status_code=503, detail="; ".join(errors))

    return "ok"
