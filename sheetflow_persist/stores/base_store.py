"""
RESPONSIBILITIES
- Define shared interfaces and exceptions for XLSX-backed stores.
- Provide the health report returned by every store.
PROCESS OVERVIEW
1. init_store -> resolve target path, ensure directories and workbook skeleton exist.
2. upsert -> merge a single record by its key, keeping created/updated timestamps.
3. query -> return matching rows as a pandas.DataFrame.
4. healthcheck -> verify directory write access and lock availability.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping


class StoreError(RuntimeError):
    """Base exception type for persistence-layer failures."""


class StoreInitializationError(StoreError):
    """Raised when a store cannot be initialized due to missing prerequisites."""


class StoreValidationError(StoreError):
    """Raised when input data fails validation rules."""


class StoreLockedError(StoreError):
    """Raised when a target workbook is locked by another process."""


@dataclass(slots=True)
class PersistHealth:
    """Structured report produced by health checks."""

    writable_paths: dict[str, bool]
    locked_paths: list[str]
    issues: list[str] = field(default_factory=list)

    def is_healthy(self) -> bool:
        """Return True when no issues are observed."""

        return not self.issues and not self.locked_paths and all(self.writable_paths.values())


class BaseStore(ABC):
    """Abstract class shared by concrete XLSX-backed stores."""

    sheet_name: str
    columns: tuple[str, ...]
    path: Path

    def __init__(self, *, logger: logging.Logger | None = None) -> None:
        self.logger = logger or logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def init_store(self) -> Path:
        """Ensure backing workbook exists, returning absolute path."""

    @abstractmethod
    def query(self, params: Mapping[str, object]) -> object:
        """Run a query and return results (usually a pandas.DataFrame)."""

    def healthcheck(self) -> PersistHealth:
        """Check that the store directory is writable and the workbook is not locked."""

        issues: list[str] = []
        try:
            self.init_store()
        except StoreError as exc:
            issues.append(str(exc))
        lock_path = self.path.with_suffix(self.path.suffix + ".lock")
        return PersistHealth(
            writable_paths={str(self.path.parent): self.path.parent.exists()},
            locked_paths=[str(lock_path)] if lock_path.exists() else [],
            issues=issues,
        )
