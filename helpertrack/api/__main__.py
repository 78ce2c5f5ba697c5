"""
helpertrack.api.__main__ — Entry point for ``python -m helpertrack.api``
=========================================================================

Wiring:
1. Load .env (``DATABASE_URL``).
2. Load config.yaml (port, timeouts).
3. Configure logging.
4. Serve the FastAPI app with uvicorn (blocking).
"""

from __future__ import annotations

import logging

import uvicorn
from dotenv import load_dotenv

from helpertrack.api.deps import get_config

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("helpertrack")


def main() -> None:
    """Bootstrap and run the helpertrack API."""
    load_dotenv()

    cfg = get_config()
    logger.info("Config loaded — Service: %s", cfg.service_name)

    uvicorn.run("helpertrack.api.main:app", host="0.0.0.0", port=cfg.api_port, log_config=None)


if __name__ == "__main__":
    main()
