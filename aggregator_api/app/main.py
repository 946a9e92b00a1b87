"""
Application factory for the Aggregator API.

``create_app`` sets up logging, builds the FastAPI application, wires
the header middleware and the provider, and enables the configured
service groups under the version prefix.  Unlike a module-level app
instance, the factory takes an explicit ``Settings`` object so that
the upstream is dialled only when the server starts::

    uvicorn aggregator_api.app.main:create_app --factory

A provider can be passed in directly, which is how tests plug in
doubles without any upstream.
"""

import logging
from typing import Optional

from fastapi import FastAPI

from .api.services import Services
from .core.config import Settings
from .core.logging_config import setup_logging
from .core.middleware import RouteCORSMiddleware, add_default_headers
from .providers.base import Provider
from .providers.infura import Infura

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, provider: Optional[Provider] = None) -> FastAPI:
    """Create and configure the gateway application.

    Parameters
    ----------
    settings : Optional[Settings]
        Configuration; read from the environment when omitted.
    provider : Optional[Provider]
        Upstream handlers.  When omitted an :class:`Infura` provider is
        dialled from ``settings.upstream_url``.

    Returns
    -------
    FastAPI
        The application with the configured services enabled.

    Raises
    ------
    ProviderConnectionError
        The upstream endpoint is missing or unusable.
    UnknownServiceError
        ``settings.enabled_services`` names a service that does not exist.
    """
    settings = settings or Settings()
    setup_logging(settings.log_level, settings.log_file or None)

    if provider is None:
        provider = Infura.dial(settings.upstream_url, timeout=settings.rpc_timeout)

    # Only the paths in the routing table are reachable; no slash redirects.
    app = FastAPI(title=settings.project_name, version=settings.api_version, redirect_slashes=False)

    # Middlewares run in reverse order of registration: headers are
    # injected last so they also land on CORS preflight responses.
    app.add_middleware(
        RouteCORSMiddleware,
        router=app.router,
        allow_origins=settings.cors_origin_list,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )
    app.middleware("http")(add_default_headers)

    logger.info("running api version: %s", settings.api_version)
    services = Services(app.router, provider, prefix=settings.version_prefix)
    for name in settings.service_list:
        services.enable(name)

    app.state.settings = settings
    app.state.services = services
    app.state.provider = provider

    @app.on_event("shutdown")
    async def shutdown_event() -> None:
        close = getattr(provider, "close", None)
        if callable(close):
            close()
        logger.info("shutting down")

    return app
