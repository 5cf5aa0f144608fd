"""Loading the provider operation catalog from the Azure CLI or a JSON cache."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable

from .actions import InvalidArgumentError, OperationCatalog
from .azcli import AzRunner, AzureCliError, run_az

logger = logging.getLogger(__name__)


class CatalogLoadError(AzureCliError):
    """Raised when the operation catalog cannot be loaded."""


def flatten_provider_operations(providers: Iterable[dict[str, Any]]) -> list[str]:
    """Collect operation names from ``az provider operation`` output.

    Operations live both directly on the provider and under each of its
    resource types.
    """
    names: list[str] = []
    for provider in providers:
        for op in provider.get("operations") or []:
            if op.get("name"):
                names.append(op["name"])
        for rtype in provider.get("resourceTypes") or []:
            for op in rtype.get("operations") or []:
                if op.get("name"):
                    names.append(op["name"])
    return names


def load_operation_catalog(
    runner: AzRunner | None = None,
    namespaces: list[str] | None = None,
) -> OperationCatalog:
    """Fetch all registered provider operations.

    Args:
        runner: Azure CLI runner (defaults to :func:`run_az`).
        namespaces: Restrict the catalog to these provider namespaces.

    Raises:
        CatalogLoadError: If any provider call fails or returns nothing usable.
    """
    run = runner or run_az
    try:
        if namespaces:
            providers = []
            for ns in namespaces:
                logger.info("Loading operations for provider %s", ns)
                data = run(["provider", "operation", "show", "--namespace", ns])
                if data:
                    providers.append(data)
        else:
            logger.info("Loading operations for all providers")
            providers = run(["provider", "operation", "list"]) or []
    except AzureCliError as e:
        raise CatalogLoadError(f"Failed to load provider operations: {e}", cmd=e.cmd, stderr=e.stderr) from e

    names = flatten_provider_operations(providers)
    if not names:
        raise CatalogLoadError("Provider operation listing returned no operations")

    catalog = OperationCatalog(names)
    logger.info("Loaded %d operations from %d provider(s)", len(catalog), len(providers))
    return catalog


def _namespace_key(namespaces: Iterable[str] | None) -> list[str]:
    """Normalize a namespace filter; an empty list means every provider."""
    return sorted({ns.lower() for ns in namespaces or []})


def _read_cache(p: Path) -> dict[str, Any]:
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise CatalogLoadError(f"Cannot read catalog cache {p}: {e}") from e
    # bare lists predate the namespaces key and always held every provider
    return data if isinstance(data, dict) else {"operations": data}


def load_catalog_file(path: Path | str) -> OperationCatalog:
    """Load a catalog previously written by :func:`save_catalog_file`."""
    p = Path(path)
    operations = _read_cache(p).get("operations")
    if not isinstance(operations, list):
        raise CatalogLoadError(f"Catalog cache {p} has no 'operations' list")
    try:
        return OperationCatalog(operations)
    except InvalidArgumentError as e:
        raise CatalogLoadError(f"Catalog cache {p} is malformed: {e}") from e


def cached_namespaces(path: Path | str) -> list[str]:
    """Return the namespace filter a cache file was built with ([] for all providers)."""
    p = Path(path)
    namespaces = _read_cache(p).get("namespaces") or []
    if not isinstance(namespaces, list) or not all(isinstance(ns, str) for ns in namespaces):
        raise CatalogLoadError(f"Catalog cache {p} has a malformed 'namespaces' list")
    return _namespace_key(namespaces)


def save_catalog_file(
    catalog: OperationCatalog,
    path: Path | str,
    namespaces: Iterable[str] | None = None,
) -> Path:
    """Write the catalog as sorted JSON so later runs can skip the provider call.

    ``namespaces`` records the provider filter the catalog was loaded with, so
    the cache is only reused for the same filter.
    """
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    payload = {"namespaces": _namespace_key(namespaces), "operations": list(catalog)}
    p.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    logger.info("Wrote %d operations to %s", len(catalog), p)
    return p


def get_catalog(
    runner: AzRunner | None = None,
    namespaces: list[str] | None = None,
    cache_file: Path | str | None = None,
    refresh: bool = False,
) -> OperationCatalog:
    """Return the catalog from the cache file when present, else from the provider.

    The cache is only used when it was built with the same namespace filter.
    A freshly fetched catalog is written back to ``cache_file`` if one is given.
    """
    if cache_file and not refresh and Path(cache_file).exists():
        if cached_namespaces(cache_file) == _namespace_key(namespaces):
            logger.info("Using cached operation catalog %s", cache_file)
            return load_catalog_file(cache_file)
        logger.info("Cached catalog %s was built for other namespaces, refetching", cache_file)

    catalog = load_operation_catalog(runner=runner, namespaces=namespaces)
    if cache_file:
        save_catalog_file(catalog, cache_file, namespaces=namespaces)
    return catalog
