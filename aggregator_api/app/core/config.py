"""
Simple configuration management.

The ``Settings`` dataclass reads its defaults from environment
variables at instantiation time.  Command line flags parsed by
``parse_args`` take precedence over the environment, mirroring the
behaviour of the original gateway where every flag falls back to an
environment variable.  The resulting object is passed explicitly to
``create_app``; no module reads the environment at request time.
"""

import argparse
import os
import re
from dataclasses import dataclass, field, replace
from typing import List, Optional, Sequence

_DURATION_RE = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def parse_duration(value: str) -> float:
    """Convert a duration string into seconds.

    Accepts the compact notation used by the original command line
    (``"500ms"``, ``"15s"``, ``"1m"``, ``"1h30m"``) as well as a bare
    number, which is read as seconds.

    Raises
    ------
    ValueError
        If ``value`` is empty or cannot be parsed.
    """
    text = value.strip()
    if not text:
        raise ValueError("empty duration")
    try:
        return float(text)
    except ValueError:
        pass

    pos = 0
    total = 0.0
    for match in _DURATION_RE.finditer(text):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos != len(text) or pos == 0:
        raise ValueError(f"invalid duration {value!r}")
    return total


def _split_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class Settings:
    """Gateway settings loaded from environment variables."""

    project_name: str = field(default_factory=lambda: os.getenv("PROJECT_NAME", "Aggregator API"))
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    # Optional path of a log file written next to the console output.
    log_file: str = field(default_factory=lambda: os.getenv("LOG_FILE", ""))

    # Listening socket for the HTTP server.
    host: str = field(default_factory=lambda: os.getenv("HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: int(os.getenv("PORT", "3333")))

    # Upstream provider endpoint and access key.  The connection target is
    # ``<endpoint>/<key>``.
    endpoint: str = field(default_factory=lambda: os.getenv("INFURA_ENDPOINT", ""))
    key: str = field(default_factory=lambda: os.getenv("INFURA_KEY", ""))

    # Version segment exposed in the URI, e.g. ``/v1/block/``.
    api_version: str = field(default_factory=lambda: os.getenv("API_VERSION", "v1"))

    # Seconds to wait for in-flight requests on shutdown.
    graceful_timeout: float = field(
        default_factory=lambda: parse_duration(os.getenv("GRACEFUL_TIMEOUT", "15s"))
    )
    # Seconds before an upstream call is abandoned.
    rpc_timeout: float = field(default_factory=lambda: parse_duration(os.getenv("RPC_TIMEOUT", "15s")))

    # Comma-separated service groups to enable.  ``send`` is left out by
    # default so that a fresh deployment is read-only.
    enabled_services: str = field(
        default_factory=lambda: os.getenv("ENABLED_SERVICES", "blocks,transactions")
    )
    cors_origins: str = field(default_factory=lambda: os.getenv("CORS_ORIGINS", "*"))

    @property
    def upstream_url(self) -> str:
        """Endpoint and key joined with a single ``/``."""
        endpoint = self.endpoint.rstrip("/")
        if not self.key:
            return endpoint
        return f"{endpoint}/{self.key.lstrip('/')}"

    @property
    def version_prefix(self) -> str:
        version = self.api_version.strip("/")
        return f"/{version}" if version else ""

    @property
    def service_list(self) -> List[str]:
        names: List[str] = []
        for name in _split_list(self.enabled_services):
            name = name.lower()
            if name not in names:
                names.append(name)
        return names

    @property
    def cors_origin_list(self) -> List[str]:
        return _split_list(self.cors_origins)


def _duration_arg(value: str) -> float:
    try:
        return parse_duration(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Versioned REST gateway for an Ethereum JSON-RPC provider.")
    ap.add_argument("--listening-ip", dest="host", help="self listening ip")
    ap.add_argument("--listening-port", dest="port", type=int, help="self listening port")
    ap.add_argument("--service-endpoint", dest="endpoint", help="endpoint provided by the RPC service")
    ap.add_argument("--service-key", dest="key", help="key provided by the RPC service")
    ap.add_argument("--api-version", dest="api_version", help="the version exposed in api uri eg. /v1/route")
    ap.add_argument(
        "--graceful-timeout",
        dest="graceful_timeout",
        type=_duration_arg,
        help="how long to wait for existing connections to finish on shutdown, e.g. 15s or 1m",
    )
    ap.add_argument("--rpc-timeout", dest="rpc_timeout", type=_duration_arg, help="upstream call timeout, e.g. 15s")
    ap.add_argument(
        "--services",
        dest="enabled_services",
        help="comma-separated service groups to enable (blocks, transactions, send)",
    )
    ap.add_argument("--log-level", dest="log_level", help="logging level name, e.g. INFO or DEBUG")
    ap.add_argument("--log-file", dest="log_file", help="also write logs to this file")
    return ap


def parse_args(argv: Optional[Sequence[str]] = None, base: Optional[Settings] = None) -> Settings:
    """Return settings with command line flags applied over ``base``.

    Flags that are not given keep the value from ``base`` (a fresh
    ``Settings`` read from the environment when omitted).
    """
    args = build_parser().parse_args(argv)
    overrides = {name: value for name, value in vars(args).items() if value is not None}
    return replace(base or Settings(), **overrides)
