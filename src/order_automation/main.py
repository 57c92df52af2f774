"""Automation service entry point."""

import os
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

# Load environment variables from .env file
env_path = Path(__file__).parent.parent.parent / ".env"
load_dotenv(env_path)

from order_automation.config.settings import settings  # noqa: E402


def main():
    """Run the automation service."""
    reload = os.getenv("RELOAD", "false").lower() == "true"

    uvicorn.run(
        "order_automation.server.app:app",
        host=settings.host,
        port=settings.port,
        reload=reload,
        log_level=settings.log_level.lower()
    )


if __name__ == "__main__":
    main()
