"""Centralised observability helpers for structured lifecycle logging."""

from __future__ import annotations
import logging
import os
import platform
import socket
import subprocess
import sys
import time
import traceback
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any, Iterator, Optional

if TYPE_CHECKING:  # pragma: no cover - import for type checking only
    from corrector.models import TokenUsage


LOGGER = logging.getLogger("corrector.telemetry")

_ENV_KEYS_TO_LOG: tuple[str, ...] = (
    "OPENAI_MODEL",
    "OPENAI_TEMPERATURE",
    "OPENAI_TIMEOUT_MS",
    "OPENAI_MAX_RETRIES",
    "OPENAI_RETRY_DELAY_MS",
    "AI_MAX_CORRECTION_WORDS",
    "CHUNK_MAX_TOKENS",
    "CHUNK_CHARS_PER_TOKEN",
    "CHUNK_OVERLAP_SENTENCES",
    "CORRECTION_CONCURRENCY",
    "VERIFICATION_BATCH_SIZE",
    "VERIFICATION_CONCURRENCY",
    "FIRESTORE_COLLECTION",
    "CORRECTION_ENGINE",
    "RESULT_STORE",
    "RESULT_STORE_DIR",
)


def _safe_getuid() -> Optional[int]:  # pragma: no cover - platform dependent
    try:
        return os.getuid()  # type: ignore[attr-defined]
    except AttributeError:
        return None


def _run_command(command: list[str], *, timeout: float = 5.0) -> tuple[int, str, str]:
    try:
        completed = subprocess.run(
            command,
            check=False,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except Exception as error:  # pragma: no cover - depends on runtime
        return 1, "", str(error)
    return completed.returncode, completed.stdout.strip(), completed.stderr.strip()


def _format_exception(error: BaseException) -> str:
    return "".join(traceback.format_exception(error.__class__, error, error.__traceback__))


def _usage_details(usage: "TokenUsage | None") -> dict[str, int] | None:
    if usage is None:
        return None
    return {
        "prompt_tokens": usage.prompt_tokens,
        "completion_tokens": usage.completion_tokens,
        "total_tokens": usage.total_tokens,
    }


def log_event(
    logger: Optional[logging.Logger],
    step: str,
    *,
    level: str = "info",
    job_id: str | None = None,
    chunk: int | None = None,
    duration_ms: float | None = None,
    exc: BaseException | str | None = None,
    details: dict[str, Any] | None = None,
    extra: dict[str, Any] | None = None,
    **payload: Any,
) -> None:
    """Emit a structured log event with the agreed-upon schema."""

    logger = logger or LOGGER
    event: dict[str, Any] = {"step": step, "module": logger.name}
    if job_id:
        event["job_id"] = job_id
    if chunk is not None:
        event["chunk"] = chunk
    if duration_ms is not None:
        event["duration_ms"] = round(duration_ms, 3)
    if details is not None:
        event["details"] = details
    if extra:
        event.update(extra)
    event.update(payload)

    exc_info = None
    if exc is not None:
        if isinstance(exc, BaseException):
            event["exc"] = _format_exception(exc)
            exc_info = (exc.__class__, exc, exc.__traceback__)
        else:
            event["exc"] = str(exc)

    log_method = getattr(logger, level.lower(), logger.info)
    log_method(event, exc_info=exc_info)


def emit_app_startup_event() -> None:
    env_values = {key: os.getenv(key) for key in _ENV_KEYS_TO_LOG if os.getenv(key) is not None}
    details = {
        "env": env_values,
        "openai_api_key_configured": bool(os.getenv("OPENAI_API_KEY")),
        "python": sys.version.split()[0],
        "platform": platform.platform(),
    }
    payload = {
        "commit": _resolve_git_commit(),
        "user": _safe_getuid(),
        "pid": os.getpid(),
        "hostname": socket.gethostname(),
        "cwd": str(Path.cwd()),
    }
    log_event(LOGGER, "app.startup", details=details, extra=payload)


def emit_engine_call(
    *,
    engine: str,
    duration_ms: float,
    usage: "TokenUsage | None",
    error: BaseException | None = None,
) -> None:
    details = {"engine": engine, "usage": _usage_details(usage)}
    level = "warning" if error else "debug"
    log_event(LOGGER, "engine.call", level=level, duration_ms=duration_ms, details=details, exc=error)


def emit_stage_event(
    step: str,
    *,
    job_id: str | None = None,
    chunk: int | None = None,
    duration_ms: float | None = None,
    usage: "TokenUsage | None" = None,
    **details: Any,
) -> None:
    if usage is not None:
        details["usage"] = _usage_details(usage)
    log_event(LOGGER, step, job_id=job_id, chunk=chunk, duration_ms=duration_ms, details=details)


def emit_job_event(
    step: str,
    *,
    job_id: str,
    status: str,
    filename: str | None = None,
    duration_ms: float | None = None,
    **details: Any,
) -> None:
    details = {"status": status, "file": filename, **details}
    level = "error" if status == "failed" else "info"
    log_event(LOGGER, step, level=level, job_id=job_id, duration_ms=duration_ms, details=details)


def emit_exception(
    *,
    module: str,
    error: BaseException,
    job_id: str | None = None,
    suggestion: str | None = None,
) -> None:
    details = {"module": module}
    if suggestion:
        details["suggestion"] = suggestion
    log_event(
        LOGGER,
        "exception",
        level="error",
        job_id=job_id,
        details=details,
        exc=error,
    )


@contextmanager
def traced_duration(step: str, *, logger: Optional[logging.Logger] = None, **fields: Any) -> Iterator[None]:
    start = time.perf_counter()
    log_event(logger or LOGGER, f"{step}.start", details=fields)
    try:
        yield
    except Exception as error:
        log_event(logger or LOGGER, f"{step}.error", level="error", details=fields, exc=error)
        raise
    finally:
        end = time.perf_counter()
        log_event(
            logger or LOGGER,
            f"{step}.complete",
            duration_ms=(end - start) * 1000.0,
            details=fields,
        )


def _resolve_git_commit() -> Optional[str]:
    returncode, stdout, _ = _run_command(["git", "rev-parse", "HEAD"])
    if returncode != 0:
        return None
    return stdout.strip() or None


__all__ = [
    "emit_app_startup_event",
    "emit_engine_call",
    "emit_exception",
    "emit_job_event",
    "emit_stage_event",
    "log_event",
    "traced_duration",
]
