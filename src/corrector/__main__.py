"""Serve the correction API with uvicorn: ``python -m corrector``."""
from __future__ import annotations

import os

import uvicorn

from corrector.config import _int_from_env, load_env_file


def main() -> None:
    load_env_file()
    uvicorn.run(
        "corrector.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=_int_from_env("PORT", 8000, minimum=1),
        log_config=None,
    )


if __name__ == "__main__":
    main()
