"""Loads configured geometry layers into a ZoneCatalog."""

from __future__ import annotations

import logging

import httpx

from ..config import AppConfig
from ..services.catalog import ZoneCatalog
from .sources import DataSource, fetch_json, resolve_location

logger = logging.getLogger(__name__)


async def load_catalog(config: AppConfig, source: DataSource, config_location: str) -> tuple[ZoneCatalog, list[str]]:
    """Fetch every layer in order; a failing layer is skipped, the rest still load."""

    catalog = ZoneCatalog()
    warnings: list[str] = []
    for layer in config.layers:
        location = resolve_location(config_location, layer.url)
        try:
            collection = await fetch_json(source, location)
        except (httpx.HTTPError, OSError, ValueError) as exc:
            message = f"Layer {layer.day}/{layer.tier} failed to load from {layer.url}: {exc}"
            logger.warning(message)
            warnings.append(message)
            continue

        features = collection.get("features") if isinstance(collection, dict) else None
        if not isinstance(features, list):
            message = f"Layer {layer.day}/{layer.tier} at {layer.url} is not a feature collection"
            logger.warning(message)
            warnings.append(message)
            continue

        try:
            added = catalog.load(
                layer.tier,
                layer.day,
                features,
                key_field=config.fields.key,
                label_field=config.fields.label,
                day_field=config.fields.day,
            )
        except (TypeError, ValueError, AttributeError, KeyError) as exc:
            message = f"Layer {layer.day}/{layer.tier} at {layer.url} has unreadable features: {exc}"
            logger.warning(message)
            warnings.append(message)
            continue
        logger.info("Loaded %d %s zones for %s", added, layer.tier, layer.day)
    return catalog, warnings
