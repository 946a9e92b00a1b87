"""
Application package.

The gateway is organised in small pieces: ``core`` holds configuration,
logging, errors and middleware; ``providers`` implements the upstream
handlers; ``api`` groups those handlers into services that are enabled
independently; ``main`` assembles the FastAPI application.
"""

from .main import create_app  # noqa: F401
