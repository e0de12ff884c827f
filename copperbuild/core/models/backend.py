"""
Backend models — what we are resolving and where it came from.

A ``LibraryPrefix`` is only ever constructed by the resolution chain
after the prefix validator accepted it, so holding one means "this
directory passed validation in the current run".
"""

from __future__ import annotations

from enum import IntEnum, StrEnum
from pathlib import Path

from pydantic import BaseModel, ConfigDict


class BackendKind(StrEnum):
    """The two native runtimes the glue library links against."""

    LIBTORCH = "libtorch"
    TENSORFLOW = "tensorflow"


class CandidateSource(IntEnum):
    """Candidate origins, in the order they are tried."""

    OVERRIDE = 1
    SYSTEM = 2
    VENDOR = 3
    MANAGED = 4

    @property
    def label(self) -> str:
        return self.name.lower()


class PrefixStatus(StrEnum):
    """Outcome of probing a candidate directory."""

    ABSENT = "absent"
    INVALID = "invalid"
    VALID = "valid"


class HostPlatform(BaseModel):
    """Normalized description of the machine we are building on."""

    model_config = ConfigDict(frozen=True)

    os: str        # windows | linux | darwin
    arch: str      # x86_64 | arm64 | ...

    @property
    def is_windows(self) -> bool:
        return self.os == "windows"

    @property
    def is_macos(self) -> bool:
        return self.os == "darwin"

    @property
    def tag(self) -> str:
        """``<os>-<arch>``, used to key managed install directories."""
        return f"{self.os}-{self.arch}"


class Candidate(BaseModel):
    """One ranked place a backend might live. ``path=None`` means absent."""

    model_config = ConfigDict(frozen=True)

    source: CandidateSource
    path: Path | None = None


class LibraryPrefix(BaseModel):
    """A validated installation root for exactly one backend."""

    model_config = ConfigDict(frozen=True)

    kind: BackendKind
    root: Path
    source: CandidateSource
    valid: bool = True

    @property
    def lib_dir(self) -> Path:
        return self.root / "lib"

    @property
    def include_dir(self) -> Path:
        return self.root / "include"

    @property
    def bin_dir(self) -> Path:
        return self.root / "bin"
