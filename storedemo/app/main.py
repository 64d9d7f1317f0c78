"""
FastAPI application entry point.

Run with:
    uvicorn storedemo.app.main:app --port 3000

Or via the console script:
    storedemo
"""

import uvicorn

from storedemo.app.core.config import get_settings
from storedemo.app.core.logging_config import setup_logging
from storedemo.app.factory import create_app

# ── Initialise logging & default app ──
setup_logging()
app = create_app()


def run() -> None:
    """Console-script entry point."""
    config = get_settings()
    uvicorn.run(
        "storedemo.app.main:app",
        host=config.HOST,
        port=config.PORT,
        log_config=None,
    )


if __name__ == "__main__":
    run()
