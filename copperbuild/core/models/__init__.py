"""
Domain models — Pydantic types for copperbuild.

All models are re-exported here for convenient access:

    from copperbuild.core.models import BackendKind, LibraryPrefix, LinkPlan
"""

from copperbuild.core.models.action import Action, Receipt
from copperbuild.core.models.archive import ArchiveFamily, ArchiveJob
from copperbuild.core.models.backend import (
    BackendKind,
    Candidate,
    CandidateSource,
    HostPlatform,
    LibraryPrefix,
    PrefixStatus,
)
from copperbuild.core.models.config import BackendSettings, BuildConfig, DownloadSettings
from copperbuild.core.models.link import BuildResult, LinkDirective, LinkPlan, RuntimeImage

__all__ = [
    # action.py
    "Action",
    # archive.py
    "ArchiveFamily",
    "ArchiveJob",
    # backend.py
    "BackendKind",
    # config.py
    "BackendSettings",
    "BuildConfig",
    # link.py
    "BuildResult",
    "Candidate",
    "CandidateSource",
    "DownloadSettings",
    "HostPlatform",
    "LibraryPrefix",
    "LinkDirective",
    "LinkPlan",
    "PrefixStatus",
    "Receipt",
    "RuntimeImage",
]
