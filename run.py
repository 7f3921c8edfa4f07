#!/usr/bin/env python3
"""Main entry point for the vaccination reminder worker."""

import asyncio
import logging
import sys
from pathlib import Path

import uvicorn

from reminder_worker.config import WorkerConfig, get, load_config
from reminder_worker.api import app as api_app, set_worker
from reminder_worker.bot import attach_worker, build_worker, create_bot

project_root = Path(__file__).parent

logger = logging.getLogger(__name__)


async def serve():
    """Run the worker with its Telegram and HTTP hosts in one event loop."""
    config = WorkerConfig.from_config()
    bot_app = create_bot()
    worker = build_worker(config, bot_app)
    set_worker(worker)

    host = get("api.host", "127.0.0.1")
    port = get("api.port", 8000)
    server = uvicorn.Server(uvicorn.Config(api_app, host=host, port=port, log_level="info"))

    logger.info(f"Starting reminder worker API on {host}:{port}")

    if bot_app is None:
        await worker.startup()
        try:
            await server.serve()
        finally:
            worker.shutdown()
        return

    attach_worker(bot_app, worker)
    async with bot_app:
        await bot_app.start()
        await bot_app.updater.start_polling()
        await worker.startup()
        try:
            await server.serve()
        finally:
            worker.shutdown()
            await bot_app.updater.stop()
            await bot_app.stop()


def main():
    """Run the reminder worker."""
    config_path = project_root / "config" / "config.yaml"

    if not config_path.exists():
        print("Error: config/config.yaml not found")
        print("Copy config/config.example.yaml to config/config.yaml and configure it")
        sys.exit(1)

    load_config(str(config_path))

    # Setup logging
    logging.basicConfig(
        level=get("logging.level", "INFO"),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    asyncio.run(serve())


if __name__ == "__main__":
    main()
