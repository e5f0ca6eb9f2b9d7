"""
Server lifecycle controller.

Builds the application, binds the listening socket and serves it with
uvicorn. Handles SIGTERM and SIGINT by draining in-flight requests for
at most ``shutdown_grace_seconds``, releasing resources and exiting
with status 0.

Startup failures are logged; only in production do they terminate the
process (status 1). Elsewhere the controller returns without a bound
listener.
"""

import logging
import signal
import socket
import sys
from enum import Enum
from types import FrameType
from typing import Callable, Optional

import uvicorn
from fastapi import FastAPI

from mindsync.core.config import Settings, get_settings
from mindsync.main import create_app
from mindsync.shared.logging import configure_logging

logger = logging.getLogger(__name__)

SHUTDOWN_SIGNALS = (signal.SIGTERM, signal.SIGINT)


class LifecycleState(str, Enum):
    """Phases of the server process."""

    STARTING = "starting"
    LISTENING = "listening"
    SHUTTING_DOWN = "shutting_down"
    TERMINATED = "terminated"


def release_resources() -> None:
    """Disconnect external resources before exit.

    The server holds no connections of its own yet; this is the hook
    where a database disconnect belongs.
    """
    logger.debug("No external resources to release")


def bind_socket(host: str, port: int) -> socket.socket:
    """Create the listening TCP socket. Raises OSError when binding fails."""
    return socket.create_server((host, port))


class LifecycleServer(uvicorn.Server):
    """uvicorn server that reports once it is accepting connections."""

    def __init__(self, config: uvicorn.Config, on_listening: Callable[[], None]) -> None:
        super().__init__(config)
        self.on_listening = on_listening

    async def startup(self, sockets: Optional[list[socket.socket]] = None) -> None:
        await super().startup(sockets=sockets)
        if self.started:
            self.on_listening()


class ServerLifecycle:
    """Drives the server through starting, listening and shutdown.

    Args:
        settings: Loaded application settings.
        app_factory: Builds the ASGI application from the settings.
        cleanup: Resource release hook run during shutdown.
        exit_func: Terminates the process with a status code.
        server_factory: Builds the uvicorn server for a config.
    """

    def __init__(
        self,
        settings: Settings,
        app_factory: Callable[[Settings], FastAPI] = create_app,
        cleanup: Callable[[], None] = release_resources,
        exit_func: Callable[[int], None] = sys.exit,
        server_factory: Optional[Callable[..., uvicorn.Server]] = None,
    ) -> None:
        self.settings = settings
        self.app_factory = app_factory
        self.cleanup = cleanup
        self.exit_func = exit_func
        self.server_factory = server_factory or LifecycleServer
        self.state = LifecycleState.STARTING
        self.server: Optional[uvicorn.Server] = None

    def build_server(self, app: FastAPI) -> uvicorn.Server:
        config = uvicorn.Config(
            app,
            host=self.settings.host,
            port=self.settings.port,
            log_config=None,
            server_header=False,
            timeout_graceful_shutdown=self.settings.shutdown_grace_seconds,
        )
        return self.server_factory(config, self.mark_listening)

    def mark_listening(self) -> None:
        self.state = LifecycleState.LISTENING
        logger.info("Server is running on port %s", self.settings.port)

    def install_signal_handlers(self) -> None:
        """Route SIGTERM and SIGINT to :meth:`handle_signal`."""
        for signum in SHUTDOWN_SIGNALS:
            signal.signal(signum, self.handle_signal)

    def start(self) -> None:
        """Build the app, bind the socket and serve until shutdown.

        Any failure before or while serving is logged. In production the
        process then exits with status 1; otherwise this returns.
        """
        try:
            app = self.app_factory(self.settings)
            sock = bind_socket(self.settings.host, self.settings.port)
            self.server = self.build_server(app)
            self.install_signal_handlers()
            self.server.run(sockets=[sock])
            if self.state is LifecycleState.STARTING:
                raise RuntimeError("server stopped before it started listening")
        except Exception:
            logger.exception("Failed to start the server")
            if self.settings.is_production:
                self.exit_func(1)
            return

        self.shutdown()

    def handle_signal(self, signum: int, _frame: Optional[FrameType]) -> None:
        logger.info("Received %s", signal.Signals(signum).name)
        self.shutdown()

    def shutdown(self) -> None:
        """Release resources and exit with status 0.

        Cleanup errors are logged and never change the exit status.
        """
        if self.state is LifecycleState.TERMINATED:
            return
        self.state = LifecycleState.SHUTTING_DOWN
        logger.info("Server SHUTDOWN")
        try:
            self.cleanup()
        except Exception:
            logger.exception("Error during server shutdown")
        self.state = LifecycleState.TERMINATED
        self.exit_func(0)


def main() -> None:
    """Console entry point: load settings, configure logging, serve."""
    settings = get_settings()
    configure_logging(settings)
    ServerLifecycle(settings).start()


if __name__ == "__main__":
    main()
