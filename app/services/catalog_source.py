"""Loading the static catalog data file."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import httpx

from ..models import Catalog

logger = logging.getLogger(__name__)


def _is_remote(source: str) -> bool:
    return source.lower().startswith(("http://", "https://"))


async def load_catalog(
    source: str,
    http_client: httpx.AsyncClient | None = None,
) -> Catalog:
    """Load and validate the catalog from a file path or an http(s) URL.

    The catalog is read once at startup; any problem with the data file is
    raised as ``ValueError`` so the service refuses to start.
    """

    if _is_remote(source):
        data = await _fetch_remote(source, http_client)
    else:
        path = Path(source)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError as exc:
            raise ValueError(f"Catalog file {path} does not exist") from exc
        except json.JSONDecodeError as exc:
            raise ValueError(f"Catalog file {path} is not valid JSON") from exc

    catalog = Catalog.from_payload(data)
    logger.info(
        "Loaded %s catalog items in %s categories from %s",
        len(catalog),
        len(catalog.categories) - 1,
        source,
    )
    return catalog


async def _fetch_remote(source: str, http_client: httpx.AsyncClient | None) -> object:
    async def _get(client: httpx.AsyncClient) -> httpx.Response:
        return await client.get(source, headers={"Accept": "application/json"})

    try:
        if http_client is not None:
            response = await _get(http_client)
        else:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(15.0, connect=5.0),
                follow_redirects=True,
            ) as client:
                response = await _get(client)
        response.raise_for_status()
    except httpx.HTTPError as exc:
        raise ValueError(f"Unable to fetch catalog from {source}: {exc}") from exc

    try:
        return response.json()
    except ValueError as exc:
        raise ValueError(f"Catalog at {source} is not valid JSON") from exc
