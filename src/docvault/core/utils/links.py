"""Link and asset reference helpers: classification, normalization, de-duplication"""

import re
from dataclasses import dataclass
from typing import Iterable, Optional, TypeVar


ASSET_URL_RE = re.compile(r'^/api/assets/(@[^/]+)/([a-f0-9]{64})(\.\w+)?$')

T = TypeVar("T")


@dataclass(frozen=True)
class Link:
    url: str
    host: str = ""


@dataclass(frozen=True)
class Asset:
    path: str
    caption: str = ""


@dataclass(frozen=True)
class AssetReference:
    """A parsed /api/assets/<alias>/<sha256>[.ext] URL."""
    project_alias: str
    hash: str
    ext: str
    original_url: str

    @property
    def filename(self) -> str:
        return f"{self.hash}{self.ext}"

    @property
    def local_path(self) -> str:
        return f"./assets/{self.filename}"


def parse_asset_url(url: str) -> Optional[AssetReference]:
    """Return the AssetReference for an asset API URL, or None when url does not match."""
    m = ASSET_URL_RE.match(url or "")
    if not m:
        return None
    return AssetReference(project_alias=m.group(1), hash=m.group(2), ext=m.group(3) or "", original_url=url)


def is_asset_path(path: str) -> bool:
    """True for vault-relative paths under a project's assets/ folder."""
    return path.startswith("projects/") and "/assets/" in path


def is_external_url(url: str) -> bool:
    if not url:
        return False
    if url.startswith(("http://", "https://")):
        return True
    if url.startswith(("projects/", "assets/")):
        return False
    return ":" in url


def normalize_asset_path(path: str) -> str:
    return path.replace("\\", "/").removeprefix("/")


def _dedupe(items: Iterable[T], key) -> list[T]:
    seen: set[str] = set()
    unique = []
    for item in items:
        k = key(item)
        if k not in seen:
            seen.add(k)
            unique.append(item)
    return unique


def deduplicate_links(links: Iterable[Link]) -> list[Link]:
    """Drop repeated URLs, keeping first-seen order."""
    return _dedupe(links, lambda link: link.url)


def deduplicate_assets(assets: Iterable[Asset]) -> list[Asset]:
    return _dedupe(assets, lambda asset: asset.path)
