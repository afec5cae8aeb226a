#!/usr/bin/env python3
"""Run the contact form API under uvicorn using the settings in contact_api.config."""

import uvicorn

from contact_api import config

if __name__ == "__main__":
    uvicorn.run(
        "contact_api.main:app",
        host=config.API_HOST,
        port=config.API_PORT,
        reload=config.API_RELOAD,
        log_level=config.LOG_LEVEL.lower(),
    )
