"""Unit tests for crud/assets.py and crud/projects.py"""

import pytest

from builders import ASSET_HASH
from docvault.crud.assets import VaultAssetStore, normalize_extension
from docvault.crud.projects import StoreProjectCache
from docvault.exceptions import DocumentValidationError, NotFoundError


# --- VaultAssetStore ---

def test_read_asset(vault):
    """Bytes are read from projects/<alias>/assets/<hash><ext>."""
    assets = vault.assets_path("@test")
    assets.mkdir(parents=True)
    (assets / f"{ASSET_HASH}.png").write_bytes(b"png")
    assert VaultAssetStore(vault).read_asset("@test", ASSET_HASH, ".png") == b"png"
    assert VaultAssetStore(vault).read_asset("@test", ASSET_HASH, "PNG") == b"png"


def test_read_missing_asset(vault):
    """A missing asset is NotFoundError."""
    with pytest.raises(NotFoundError, match="asset not found"):
        VaultAssetStore(vault).read_asset("@test", ASSET_HASH, ".png")


@pytest.mark.parametrize("hash, ext", [("abc", ".png"), ("G" * 64, ".png"), (ASSET_HASH, ".p/ng")])
def test_read_asset_validates_hash_and_ext(vault, hash, ext):
    """Hashes must be 64 lowercase hex chars; extensions alphanumeric."""
    with pytest.raises(DocumentValidationError):
        VaultAssetStore(vault).read_asset("@test", hash, ext)


def test_normalize_extension():
    """Extensions are lower-cased and dot-prefixed."""
    assert normalize_extension("PNG") == ".png"
    assert normalize_extension(".Jpg") == ".jpg"
    assert normalize_extension("") == ""


# --- StoreProjectCache ---

def test_project_cache_resolves_existing_project(vault):
    """Existing project directories resolve to a Project with the alias slug as id."""
    vault.project_path("@notes").mkdir()
    project = StoreProjectCache(vault).get_by_alias("@notes")
    assert project.id == "notes"
    assert project.alias == "@notes"


def test_project_cache_unknown_project(vault):
    """Unknown projects raise NotFoundError."""
    with pytest.raises(NotFoundError):
        StoreProjectCache(vault).get_by_alias("@missing")


def test_project_cache_memoizes(vault):
    """A resolved project stays cached until invalidated."""
    vault.project_path("@notes").mkdir()
    cache = StoreProjectCache(vault)
    first = cache.get_by_alias("@notes")
    vault.project_path("@notes").rmdir()
    assert cache.get_by_alias("@notes") is first
    cache.invalidate("@notes")
    with pytest.raises(NotFoundError):
        cache.get_by_alias("@notes")
