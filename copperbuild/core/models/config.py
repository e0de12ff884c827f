"""
Build configuration model — loaded from copperbuild.yml.

Every field has a default, so a missing config file yields a working
configuration for the conventional ai-copper repository layout:

    cpp/                 glue library source (CMakeLists.txt, lib.cpp)
    cpp/build/           CMake build tree
    third_party/<name>/  repository-local vendor prefixes
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

from copperbuild.core.models.backend import BackendKind


class DownloadSettings(BaseModel):
    """Retry policy for archive downloads."""

    attempts: int = Field(default=3, ge=1, le=10)
    backoff_step: float = Field(default=2.0, ge=0)   # attempt n waits n * step
    timeout: int = Field(default=60, ge=1)


class BackendSettings(BaseModel):
    """Per-backend overrides of the built-in backend table."""

    override: str | None = None          # used when the env var is unset
    system_path: str | None = None
    urls: dict[str, str] = Field(default_factory=dict)    # "<os>-<arch>" -> url
    signatures: list[str] = Field(default_factory=list)   # appended to built-ins


class BuildConfig(BaseModel):
    """Root configuration for one resolution/build run."""

    version: int = 1

    project_root: Path = Field(default_factory=Path.cwd)
    source_dir: str = "cpp"
    build_dir: str = "cpp/build"
    vendor_root: str = "third_party"
    managed_root: str | None = None
    runtime_dir: str | None = None

    glue_library: str = "ai_copper"
    glue_library_windows: str = "ai_copper_cpp"
    build_type: str = "Release"
    generator: str | None = None
    generator_platform: str | None = None

    persist_scope: Literal["process", "user", "machine"] = "process"
    profile_file: str | None = None

    configure_timeout: int = 600
    build_timeout: int = 3600

    download: DownloadSettings = Field(default_factory=DownloadSettings)
    backends: dict[BackendKind, BackendSettings] = Field(default_factory=dict)

    def path(self, value: str | Path) -> Path:
        """Resolve a configured path against the project root."""
        p = Path(value).expanduser()
        return p if p.is_absolute() else self.project_root / p

    def backend(self, kind: BackendKind) -> BackendSettings:
        return self.backends.get(kind) or BackendSettings()
