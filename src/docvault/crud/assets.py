"""Read access to content-addressed asset files stored under a project's assets/ directory"""

import re

from docvault.core.ports import AssetStore
from docvault.crud.vault import Vault
from docvault.exceptions import DocumentValidationError, NotFoundError


HASH_RE = re.compile(r'^[0-9a-f]{64}$')
EXT_RE = re.compile(r'^\.[A-Za-z0-9]{1,9}$')


def validate_hash(hash: str) -> None:
    if len(hash) != 64:
        raise DocumentValidationError(f"invalid hash length: got {len(hash)}, want 64", field="hash")
    if not HASH_RE.match(hash):
        raise DocumentValidationError("invalid hash character (must be 0-9a-f)", field="hash")


def normalize_extension(ext: str) -> str:
    ext = (ext or "").lower()
    return f".{ext}" if ext and not ext.startswith(".") else ext


def validate_extension(ext: str) -> None:
    if ext and not EXT_RE.match(ext):
        raise DocumentValidationError(f"invalid extension: {ext}", field="ext")


class VaultAssetStore(AssetStore):

    def __init__(self, vault: Vault):
        self.vault = vault

    def read_asset(self, project_alias: str, hash: str, ext: str) -> bytes:
        validate_hash(hash)
        ext = normalize_extension(ext)
        validate_extension(ext)
        path = self.vault.assets_path(project_alias) / f"{hash}{ext}"
        try:
            return path.read_bytes()
        except FileNotFoundError as e:
            raise NotFoundError(f"asset not found: {hash}{ext}", path=str(path)) from e
