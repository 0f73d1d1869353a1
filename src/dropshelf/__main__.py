"""Run the Dropshelf HTTP server: ``python -m dropshelf``."""

from __future__ import annotations

import logging
import os

from dropshelf.config import ENV_PREFIX, DropshelfConfig
from dropshelf.server import create_app

logger = logging.getLogger(__name__)


def main() -> None:
    """Start the FastAPI app with uvicorn (requires the ``server`` extra)."""
    import uvicorn

    logging.basicConfig(
        level=os.environ.get(f"{ENV_PREFIX}LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config = DropshelfConfig.from_env()
    host = os.environ.get(f"{ENV_PREFIX}HOST", "0.0.0.0")
    port = int(os.environ.get(f"{ENV_PREFIX}PORT", os.environ.get("PORT", "3000")))
    logger.info("Serving %s on %s:%d", config.storage_root, host, port)
    uvicorn.run(create_app(config), host=host, port=port)


if __name__ == "__main__":
    main()
