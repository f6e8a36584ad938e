# Campeiro - Photo Marketplace API
# Copyright (c) 2026 George Scott Foley
# ORCID: 0009-0006-4957-0540
# Email: Georgescottfoley@proton.me
# Licensed under the MIT License - see LICENSE file for details

"""
Application lifecycle hooks.
"""

import logging
from collections.abc import Callable, Coroutine

logger = logging.getLogger(__name__)


class Lifecycle:
    """
    Application lifecycle manager.

    Usage:
        lifecycle = Lifecycle()

        @lifecycle.on_startup
        async def init_db():
            await db.connect()

        @lifecycle.on_shutdown
        async def close_db():
            await db.disconnect()
    """

    def __init__(self):
        self._startup_hooks: list[Callable[[], Coroutine]] = []
        self._shutdown_hooks: list[Callable[[], Coroutine]] = []
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def on_startup(self, func: Callable[[], Coroutine]) -> Callable[[], Coroutine]:
        """Decorator to register startup hook."""
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Callable[[], Coroutine]) -> Callable[[], Coroutine]:
        """Decorator to register shutdown hook."""
        self._shutdown_hooks.append(func)
        return func

    async def startup(self) -> None:
        """Execute all startup hooks in registration order."""
        logger.info("Starting application...")
        for hook in self._startup_hooks:
            try:
                await hook()
            except Exception as e:
                logger.error(f"Startup hook {hook.__name__} failed: {e}")
                raise
        self._running = True
        logger.info("Application started")

    async def shutdown(self) -> None:
        """Execute all shutdown hooks in reverse order."""
        if not self._running:
            return

        logger.info("Shutting down application...")
        self._running = False

        for hook in reversed(self._shutdown_hooks):
            try:
                await hook()
            except Exception as e:
                logger.error(f"Shutdown hook {hook.__name__} failed: {e}")

        logger.info("Application stopped")
