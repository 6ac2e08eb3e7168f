#!/usr/bin/env python3
"""
Line balancing server launcher.

Configures logging and starts uvicorn. Host and port come from
LINEBAL_HOST / LINEBAL_PORT (a local .env file is also read).
"""

import logging
import os

from dotenv import load_dotenv


if __name__ == "__main__":
    import uvicorn

    load_dotenv()
    logging.basicConfig(
        level=os.environ.get("LINEBAL_LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "linebalancer.api:app",
        host=os.environ.get("LINEBAL_HOST", "127.0.0.1"),
        port=int(os.environ.get("LINEBAL_PORT", "8000")),
        reload=os.environ.get("LINEBAL_RELOAD", "false").lower() in ("true", "1", "yes"),
    )
