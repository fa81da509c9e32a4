"""
Domain models — Pydantic types for the forge.

All models are re-exported here for convenient access:

    from apiforge.core.models import ProjectContext, Release, UpdateRecord
"""

from apiforge.core.models.command import CommandResult
from apiforge.core.models.project import ProjectContext
from apiforge.core.models.release import (
    BACKUP_SUFFIX,
    Release,
    ReleaseAsset,
    Stability,
    UpdateRecord,
    normalize_version,
    version_key,
)

__all__ = [
    "BACKUP_SUFFIX",
    # command.py
    "CommandResult",
    # project.py
    "ProjectContext",
    # release.py
    "Release",
    "ReleaseAsset",
    "Stability",
    "UpdateRecord",
    "normalize_version",
    "version_key",
]
