"""Aggregator API client.

A thin wrapper over the gateway's REST surface using ``requests``.
Each method returns a tuple ``(data, error)``: on success ``data`` is
the decoded upstream result and ``error`` is ``None``; on failure
``data`` is ``None`` and ``error`` is a dictionary with the keys
``status_code`` and ``message``.  A disabled service shows up as
``status_code == 404``.

Run as a script to smoke-check a running gateway with the sample
block and transaction queries::

    python aggregator_client.py --base-url http://localhost:3333 --rounds 5
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from typing import Any, Dict, List, Optional, Tuple

import requests


logger = logging.getLogger(__name__)

Result = Tuple[Optional[Any], Optional[Dict[str, Any]]]

# Sample mainnet block used by the smoke check.
SAMPLE_BLOCK_NUMBER = "0x5BAD55"
SAMPLE_BLOCK_HASH = "0xb3b20624f8f0f86eb50dd04688409e5cea4bd02d700bf6e79e9384d47d6a5a35"


class AggregatorClient:
    """Client for a running Aggregator API gateway."""

    def __init__(
        self,
        *,
        base_url: str,
        version: str = "v1",
        session: Optional[requests.Session] = None,
        timeout: float = 15,
    ) -> None:
        """Initialise the client.

        Args:
            base_url: Gateway address, e.g. ``http://localhost:3333``.
            version: API version segment; empty for an unversioned gateway.
            session: Optional requests session.  If not supplied a
                session will be created automatically.
            timeout: Seconds to wait for each response.
        """
        version = version.strip("/")
        self.base_url = base_url.rstrip("/") + (f"/{version}" if version else "")
        self.session = session or requests.Session()
        self.timeout = timeout

    # ------------------------------------------------------------------
    # Low level HTTP helper
    # ------------------------------------------------------------------
    def _request(self, method: str, path: str, *, form: Optional[Dict[str, str]] = None) -> Result:
        url = f"{self.base_url}{path}"
        try:
            logger.debug("Sending %s request to %s", method, url)
            response = self.session.request(method=method, url=url, data=form, timeout=self.timeout)
            response.raise_for_status()
            return response.json(), None
        except requests.HTTPError as exc:
            # The gateway answers errors with the upstream message as plain text.
            status = exc.response.status_code if exc.response is not None else None
            message = exc.response.text.strip() if exc.response is not None else ""
            if not message:
                message = str(exc)
            logger.error("Gateway request failed (%s): %s", status, message)
            return None, {"status_code": status, "message": message}
        except requests.RequestException as exc:
            logger.error("Gateway request failed: %s", exc)
            return None, {"status_code": None, "message": str(exc)}
        except ValueError as exc:
            logger.error("Gateway returned a non JSON body: %s", exc)
            return None, {"status_code": None, "message": str(exc)}

    # ------------------------------------------------------------------
    # Blocks
    # ------------------------------------------------------------------
    def block_number(self) -> Result:
        """Return the latest block number (hex string)."""
        return self._request("GET", "/block/")

    def block_by_number(self, block: str, full: bool = True) -> Result:
        """Return a block by number or by tag ("latest", "earliest", "pending")."""
        return self._request("GET", f"/block/by/number/{block}/{str(full).lower()}")

    def block_by_hash(self, block_hash: str, full: bool = True) -> Result:
        return self._request("GET", f"/block/by/hash/{block_hash}/{str(full).lower()}")

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------
    def tx_by_block_number_and_index(self, block: str, index: str) -> Result:
        return self._request("GET", f"/tx/by/number/{block}/{index}")

    def tx_by_block_hash_and_index(self, block_hash: str, index: str) -> Result:
        return self._request("GET", f"/tx/by/hash/{block_hash}/{index}")

    def send_raw_transaction(self, tx: str) -> Result:
        """Broadcast signed transaction data; returns the transaction hash."""
        return self._request("POST", "/send/raw", form={"tx": tx})


def smoke_check(client: AggregatorClient) -> List[Tuple[str, Optional[Dict[str, Any]]]]:
    """Query the sample endpoints once; return ``(name, error)`` per endpoint."""
    checks = [
        ("block by hash", lambda: client.block_by_hash(SAMPLE_BLOCK_HASH)),
        ("block by number", lambda: client.block_by_number(SAMPLE_BLOCK_NUMBER)),
        ("tx by number", lambda: client.tx_by_block_number_and_index(SAMPLE_BLOCK_NUMBER, "0x0")),
        ("tx by hash", lambda: client.tx_by_block_hash_and_index(SAMPLE_BLOCK_HASH, "0x0")),
    ]
    results = []
    for name, run_check in checks:
        data, error = run_check()
        if error is None and name == "tx by number":
            block_hash = data.get("blockHash") if isinstance(data, dict) else None
            if block_hash != SAMPLE_BLOCK_HASH:
                error = {"status_code": 200, "message": f"unexpected blockHash {block_hash!r}"}
        results.append((name, error))
    return results


def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Smoke-check a running Aggregator API gateway.")
    ap.add_argument("--base-url", default="http://localhost:3333", help="gateway address")
    ap.add_argument("--api-version", default="v1", help="API version segment")
    ap.add_argument("--rounds", type=int, default=1, help="number of passes over the sample endpoints")
    ap.add_argument("--pause", type=float, default=0.0, help="seconds to sleep between rounds")
    args = ap.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")
    client = AggregatorClient(base_url=args.base_url, version=args.api_version)

    failures = 0
    for round_no in range(1, args.rounds + 1):
        for name, error in smoke_check(client):
            if error:
                failures += 1
                print(f"[!] round {round_no}: {name}: {error['status_code']} {error['message']}", file=sys.stderr)
            else:
                print(f"[+] round {round_no}: {name}: ok")
        if args.pause and round_no < args.rounds:
            time.sleep(args.pause)
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
