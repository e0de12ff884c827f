"""
Archive models — transient download targets.
"""

from __future__ import annotations

from enum import StrEnum
from pathlib import Path

from pydantic import BaseModel

from copperbuild.core.models.backend import BackendKind, HostPlatform


class ArchiveFamily(StrEnum):
    """Archive formats recognised by content sniffing."""

    ZIP = "zip"
    GZIP_TAR = "gzip_tar"
    TAR = "tar"


class ArchiveJob(BaseModel):
    """A single download-and-unpack request.

    Exists only for the duration of one acquisition.
    """

    kind: BackendKind
    url: str
    destination: Path               # archive file on disk
    family: ArchiveFamily           # what the URL is expected to serve
    platform: HostPlatform
    nested: bool = False            # payload sits one directory deeper

    @property
    def file_name(self) -> str:
        return self.url.rsplit("/", 1)[-1].split("?", 1)[0]
