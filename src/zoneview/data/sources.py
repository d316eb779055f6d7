"""Asynchronous access to geometry, selection, assignment and customer sources."""

from __future__ import annotations

import asyncio
import csv
import json
import logging
import time
from pathlib import Path
from typing import Any, Protocol
from urllib.parse import urljoin, urlsplit
from zipfile import BadZipFile

import httpx
from openpyxl.utils.exceptions import InvalidFileException

from ..config import settings
from .tabular import Rows, rows_from_payload

logger = logging.getLogger(__name__)


class DataSource(Protocol):
    async def fetch_bytes(self, location: str) -> bytes: ...


def is_remote(location: str) -> bool:
    return urlsplit(location).scheme in {"http", "https"}


class HttpDataSource:
    """Fetches http(s) URLs with httpx and everything else from the local disk.

    Relative paths resolve against ``base_dir``. Remote requests carry a
    ``cb=<epoch millis>`` parameter when cache busting is enabled so
    intermediaries never serve a stale sheet.
    """

    def __init__(
        self,
        base_dir: Path | None = None,
        *,
        timeout: float | None = None,
        cache_bust: bool | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_dir = (base_dir or Path.cwd()).resolve()
        self.timeout = timeout if timeout is not None else settings.http_timeout_seconds
        self.cache_bust = cache_bust if cache_bust is not None else settings.cache_bust
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout, connect=10.0), follow_redirects=True)
        return self._client

    async def fetch_bytes(self, location: str) -> bytes:
        if not is_remote(location):
            path = Path(location).expanduser()
            if not path.is_absolute():
                path = self.base_dir / path
            if not path.exists():
                raise FileNotFoundError(f"Source not found: {path}")
            return await asyncio.to_thread(path.read_bytes)

        params = {"cb": str(int(time.time() * 1000))} if self.cache_bust else None
        response = await self._get_client().get(location, params=params)
        response.raise_for_status()
        logger.debug("Fetched %s (%d bytes)", location, len(response.content))
        return response.content

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None


async def fetch_json(source: DataSource, location: str) -> Any:
    payload = await source.fetch_bytes(location)
    try:
        return json.loads(payload.decode("utf-8-sig"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ValueError(f"Invalid JSON from {location}: {exc}") from exc


async def fetch_rows(source: DataSource, location: str) -> Rows:
    payload = await source.fetch_bytes(location)
    try:
        return rows_from_payload(payload, urlsplit(location).path)
    except (UnicodeDecodeError, csv.Error, KeyError, BadZipFile, InvalidFileException) as exc:
        raise ValueError(f"Unreadable sheet from {location}: {exc}") from exc


def resolve_location(config_location: str, location: str) -> str:
    """Resolve a layer or sheet location relative to the config file that names it."""

    if is_remote(location) or Path(location).expanduser().is_absolute():
        return location
    if is_remote(config_location):
        return urljoin(config_location, location)
    return str(Path(config_location).expanduser().resolve().parent / location)
