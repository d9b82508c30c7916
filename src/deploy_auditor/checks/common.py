"""Shared helpers for tree-based checkers."""

import logging
from pathlib import Path
from typing import Iterator

from ..config import AuditConfig
from ..models import CheckItem, ItemStatus
from ..scanner import FileRecord, scan_tree

logger = logging.getLogger(__name__)


def source_files(config: AuditConfig) -> Iterator[FileRecord]:
    """Source files under the configured root. Raises ScanError for a bad root."""
    return scan_tree(config.root, config.source_extensions, config.skip_dirs)


def all_files(config: AuditConfig) -> Iterator[FileRecord]:
    return scan_tree(config.root, None, config.skip_dirs)


def resolve(config: AuditConfig, relative: str) -> Path:
    """Absolute location of a configured path; leading slashes are ignored."""
    return config.root_path / relative.strip("/")


def has_access_control(directory: Path, config: AuditConfig) -> bool:
    return (directory / config.access_control_file).is_file()


def unreadable(name: str, error: OSError) -> CheckItem:
    """ERROR item for a file or target that could not be read.

    Not counted: the sub-check never ran, so it neither passes nor fails.
    """
    logger.warning(f"Cannot read {name}: {error}")
    return CheckItem(name=name, status=ItemStatus.ERROR, counted=False, detail={"error": str(error)})
