"""Remote quota read-out: payload decoding and fetchers.

The percentages shown on claude.ai/settings/usage cannot be derived from
local logs. A scraper (out of process) produces a JSON payload; this module
turns whatever it hands us into a tagged result:

- ``RemoteOk(payload)``: a payload that may update the snapshot
- ``RemoteErr(reason)``: anything else; never updates the snapshot
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from dataclasses import dataclass
from typing import Any, Protocol

import httpx
from pydantic import ValidationError

from burnrate.usage.models import RemoteUsagePayload

logger = logging.getLogger(__name__)

RESULT_URL_PREFIX = "burnrate://result/"


@dataclass(frozen=True)
class RemoteOk:
    payload: RemoteUsagePayload


@dataclass(frozen=True)
class RemoteErr:
    reason: str


RemoteResult = RemoteOk | RemoteErr


def parse_remote_payload(raw: str | bytes | dict[str, Any]) -> RemoteResult:
    """Validate a scraped payload (JSON text or already-decoded object)."""
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            return RemoteErr(f"invalid JSON: {e}")

    if not isinstance(raw, dict):
        return RemoteErr("payload is not an object")

    try:
        payload = RemoteUsagePayload.model_validate(raw)
    except ValidationError as e:
        return RemoteErr(f"invalid payload: {e.error_count()} field error(s)")

    if payload.error is not None:
        return RemoteErr(payload.error)
    return RemoteOk(payload)


def decode_result_url(url: str) -> RemoteResult:
    """Decode a ``burnrate://result/<base64-json>`` navigation URL."""
    if not url.startswith(RESULT_URL_PREFIX):
        return RemoteErr("not a result URL")
    encoded = url[len(RESULT_URL_PREFIX):]
    try:
        decoded = base64.b64decode(encoded, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as e:
        return RemoteErr(f"invalid base64 body: {e}")
    return parse_remote_payload(decoded)


class RemoteFetcher(Protocol):
    """Collaborator that obtains the remote read-out.

    Returns None when no read-out was attempted (e.g. waiting for login).
    Must not raise for expected failures; the poller guards it regardless.
    """

    def fetch(self) -> RemoteResult | None: ...


class NullFetcher:
    """Fetcher used when no remote source is configured."""

    def fetch(self) -> RemoteResult | None:
        return None


class HttpRemoteFetcher:
    """Synchronous httpx client for a scraper bridge.

    The bridge may serve the payload as JSON, or relay the scraper's
    ``burnrate://result/<base64-json>`` navigation URL as plain text.
    """

    def __init__(self, url: str, timeout: float = 30.0) -> None:
        self._url = url
        self._timeout = timeout

    def fetch(self) -> RemoteResult | None:
        try:
            with httpx.Client(timeout=self._timeout) as client:
                resp = client.get(self._url)
        except httpx.ConnectError:
            return RemoteErr("scraper bridge is offline or unreachable")
        except httpx.TimeoutException:
            return RemoteErr("scraper bridge request timed out")
        except httpx.HTTPError as e:
            return RemoteErr(f"request failed: {e}")

        if resp.status_code >= 400:
            return RemoteErr(f"scraper bridge returned {resp.status_code}")
        body = resp.content
        if body.lstrip().startswith(RESULT_URL_PREFIX.encode("ascii")):
            return decode_result_url(body.decode("ascii", errors="replace").strip())
        return parse_remote_payload(body)
