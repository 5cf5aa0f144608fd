"""Tests for loading the provider operation catalog."""

import json

import pytest
from conftest import PROVIDER_OPERATIONS

from azgov.catalog import (
    CatalogLoadError,
    flatten_provider_operations,
    get_catalog,
    load_catalog_file,
    load_operation_catalog,
    save_catalog_file,
)


def test_flatten_includes_provider_and_resource_type_operations():
    names = flatten_provider_operations(PROVIDER_OPERATIONS)
    assert "Microsoft.Compute/register/action" in names
    assert "Microsoft.Compute/virtualMachines/read" in names
    assert "Microsoft.Storage/storageAccounts/read" in names
    assert len(names) == 4


def test_load_all_providers(fake_az):
    fake_az.on("provider", "operation", "list", returns=PROVIDER_OPERATIONS)
    catalog = load_operation_catalog(runner=fake_az)
    assert len(catalog) == 4
    assert catalog.namespaces() == ["Microsoft.Compute", "Microsoft.Storage"]


def test_load_selected_namespaces(fake_az):
    fake_az.on("show", "Microsoft.Storage", returns=PROVIDER_OPERATIONS[1])
    catalog = load_operation_catalog(runner=fake_az, namespaces=["Microsoft.Storage"])
    assert list(catalog) == ["Microsoft.Storage/storageAccounts/read"]
    assert fake_az.calls == [["provider", "operation", "show", "--namespace", "Microsoft.Storage"]]


def test_cli_failure_is_fatal(fake_az):
    fake_az.fail("provider", "operation", "list", message="not logged in")
    with pytest.raises(CatalogLoadError, match="not logged in"):
        load_operation_catalog(runner=fake_az)


def test_empty_listing_is_fatal(fake_az):
    fake_az.on("provider", "operation", "list", returns=[])
    with pytest.raises(CatalogLoadError):
        load_operation_catalog(runner=fake_az)


def test_cache_file_roundtrip_and_reuse(fake_az, tmp_path):
    fake_az.on("provider", "operation", "list", returns=PROVIDER_OPERATIONS)
    cache = tmp_path / "cache" / "operations.json"

    first = get_catalog(runner=fake_az, cache_file=cache)
    assert cache.exists()
    assert json.loads(cache.read_text())["operations"] == sorted(first)

    second = get_catalog(runner=fake_az, cache_file=cache)
    assert list(second) == list(first)
    assert len(fake_az.calls) == 1

    get_catalog(runner=fake_az, cache_file=cache, refresh=True)
    assert len(fake_az.calls) == 2


def test_corrupt_cache_file(tmp_path):
    bad = tmp_path / "ops.json"
    bad.write_text("{not json")
    with pytest.raises(CatalogLoadError):
        load_catalog_file(bad)


def test_save_catalog_file(tmp_path):
    from azgov.actions import OperationCatalog

    path = save_catalog_file(OperationCatalog(["B/read", "A/read"]), tmp_path / "ops.json")
    assert json.loads(path.read_text()) == {"namespaces": [], "operations": ["A/read", "B/read"]}
    assert len(load_catalog_file(path)) == 2


def test_filtered_cache_is_not_reused_for_all_providers(fake_az, tmp_path):
    fake_az.on("show", "Microsoft.Compute", returns=PROVIDER_OPERATIONS[0])
    fake_az.on("provider", "operation", "list", returns=PROVIDER_OPERATIONS)
    cache = tmp_path / "operations.json"

    compute = get_catalog(runner=fake_az, namespaces=["Microsoft.Compute"], cache_file=cache)
    assert "Microsoft.Storage/storageAccounts/read" not in compute
    assert json.loads(cache.read_text())["namespaces"] == ["microsoft.compute"]

    everything = get_catalog(runner=fake_az, cache_file=cache)
    assert "Microsoft.Storage/storageAccounts/read" in everything
    assert len(fake_az.calls) == 2
    assert json.loads(cache.read_text())["namespaces"] == []


def test_full_cache_is_not_reused_for_a_namespace_filter(fake_az, tmp_path):
    fake_az.on("show", "Microsoft.Storage", returns=PROVIDER_OPERATIONS[1])
    fake_az.on("provider", "operation", "list", returns=PROVIDER_OPERATIONS)
    cache = tmp_path / "operations.json"

    get_catalog(runner=fake_az, cache_file=cache)
    storage = get_catalog(runner=fake_az, namespaces=["Microsoft.Storage"], cache_file=cache)
    assert list(storage) == ["Microsoft.Storage/storageAccounts/read"]
    assert len(fake_az.calls_with("show", "Microsoft.Storage")) == 1

    # namespace matching ignores case
    get_catalog(runner=fake_az, namespaces=["microsoft.storage"], cache_file=cache)
    assert len(fake_az.calls) == 2


def test_legacy_cache_without_namespaces_counts_as_all_providers(fake_az, tmp_path):
    cache = tmp_path / "operations.json"
    cache.write_text(json.dumps(["A/read", "B/read"]))
    catalog = get_catalog(runner=fake_az, cache_file=cache)
    assert list(catalog) == ["A/read", "B/read"]
    assert fake_az.calls == []


def test_cache_with_non_string_ids_is_a_load_error(tmp_path):
    bad = tmp_path / "ops.json"
    bad.write_text(json.dumps({"namespaces": [], "operations": ["A/read", 42, None]}))
    with pytest.raises(CatalogLoadError, match="malformed"):
        load_catalog_file(bad)
