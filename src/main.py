"""
Main entry point for the GitHub provider.

Initializes the Kubernetes client, reconciler plugins, controller and
status API, and runs them until a shutdown signal arrives.
"""

import asyncio
import logging
import signal
from typing import Optional

from api import StatusServer
from config import get_config
from controller import Controller
from events import EventRecorder
from kube import KubeClient
from plugins.registry import get_registry, register_builtin_plugins

logger = logging.getLogger(__name__)


class Application:
    """Main application that orchestrates the controller and status API."""

    def __init__(self):
        self.config = get_config()
        self.kube: Optional[KubeClient] = None
        self.controller: Optional[Controller] = None
        self.server: Optional[StatusServer] = None
        self.running = False

    async def initialize(self):
        """Initialize all components."""
        logger.info("Initializing provider-github")

        register_builtin_plugins()
        registry = get_registry()

        self.kube = await KubeClient.from_config(self.config.kubernetes)
        logger.info(f"Using Kubernetes API at {self.kube.api_url}")

        recorder = EventRecorder(
            self.kube, namespace=self.config.kubernetes.event_namespace
        )
        self.controller = Controller(
            kube=self.kube,
            registry=registry,
            config=self.config.controller,
            github_config=self.config.github,
            recorder=recorder,
        )

        api_config = self.config.api
        self.server = StatusServer(
            self.controller,
            host=api_config.host,
            port=api_config.port,
            log_level=api_config.log_level,
        )

        logger.info("All components initialized")

    async def start(self):
        """Start the application."""
        if not self.controller:
            await self.initialize()

        self.running = True
        logger.info("Starting provider-github")

        tasks = [
            asyncio.create_task(self.controller.start()),
            asyncio.create_task(self.server.start()),
        ]

        try:
            await asyncio.gather(*tasks)
        except asyncio.CancelledError:
            logger.info("Application tasks cancelled")

    async def stop(self):
        """Stop the application gracefully."""
        if not self.running:
            return
        logger.info("Stopping provider-github")
        self.running = False

        if self.server:
            await self.server.stop()

        if self.controller:
            await self.controller.stop()

        if self.kube:
            await self.kube.close()

        logger.info("provider-github stopped")


async def main():
    """Main entry point."""
    config = get_config()
    logging.basicConfig(
        level=getattr(logging, config.api.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    app = Application()

    # Set up signal handlers for graceful shutdown
    loop = asyncio.get_running_loop()

    def signal_handler():
        logger.info("Received shutdown signal")
        asyncio.create_task(app.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    try:
        await app.start()
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    finally:
        await app.stop()


def run():
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
