"""Entry point for the Aggregator API gateway.

Configuration comes from environment variables (optionally a ``.env``
exported by the process manager) and can be overridden with command
line flags::

    python run.py --listening-port 3333 --service-endpoint https://mainnet.infura.io/v3 \\
        --service-key <key> --api-version v1 --graceful-timeout 15s

Uvicorn handles SIGINT/SIGTERM: it stops accepting connections, waits
up to ``--graceful-timeout`` for in-flight requests and exits with
status 0.  If the upstream endpoint cannot be used the process exits
with status 1 before serving anything.
"""
import logging
import sys
from typing import Optional, Sequence

from uvicorn import Config, Server

from aggregator_api.app.core.config import Settings, parse_args
from aggregator_api.app.core.errors import GatewayError
from aggregator_api.app.core.logging_config import setup_logging
from aggregator_api.app.main import create_app

logger = logging.getLogger("aggregator_api")


def build_server(settings: Settings) -> Server:
    """Create the Uvicorn server for ``settings``."""
    app = create_app(settings)
    config = Config(
        app=app,
        host=settings.host,
        port=settings.port,
        reload=False,
        log_level=settings.log_level.lower(),
        timeout_keep_alive=60,
        timeout_graceful_shutdown=settings.graceful_timeout,
    )
    return Server(config)


def main(argv: Optional[Sequence[str]] = None) -> int:
    try:
        settings = parse_args(argv)
    except ValueError as exc:
        # Raised while reading PORT, GRACEFUL_TIMEOUT or RPC_TIMEOUT from the environment.
        setup_logging()
        logger.error("startup failed: invalid configuration: %s", exc)
        return 1
    setup_logging(settings.log_level, settings.log_file or None)
    try:
        server = build_server(settings)
    except GatewayError as exc:
        logger.error("startup failed: %s", exc)
        return 1

    logger.info("listening on %s:%s", settings.host, settings.port)
    server.run()
    return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        sys.exit(0)
