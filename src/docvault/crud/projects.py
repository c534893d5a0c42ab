"""Project lookup by alias over the vault's project directories"""

import threading
from dataclasses import dataclass

from docvault.core.ports import ProjectCache
from docvault.core.utils.paths import validate_alias
from docvault.crud.vault import Vault
from docvault.exceptions import NotFoundError


@dataclass(frozen=True)
class Project:
    id: str
    alias: str


class StoreProjectCache(ProjectCache):
    """Memoizes alias -> Project for projects whose directory exists in the vault."""

    def __init__(self, vault: Vault):
        self.vault = vault
        self._lock = threading.Lock()
        self._projects: dict[str, Project] = {}

    def get_by_alias(self, alias: str) -> Project:
        with self._lock:
            if alias in self._projects:
                return self._projects[alias]
        validate_alias(alias)
        if not self.vault.project_exists(alias):
            raise NotFoundError(f"project not found: {alias}")
        project = Project(id=alias.removeprefix('@'), alias=alias)
        with self._lock:
            self._projects[alias] = project
        return project

    def invalidate(self, alias: str) -> None:
        with self._lock:
            self._projects.pop(alias, None)
