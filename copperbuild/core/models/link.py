"""
Link and runtime models — what the run hands back to the outer build.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from copperbuild.core.models.backend import BackendKind, LibraryPrefix


class LinkDirective(BaseModel):
    """A library name plus the directory the linker finds it in."""

    model_config = ConfigDict(frozen=True)

    search_path: Path
    library: str
    kind: str = "dylib"

    def cargo_lines(self) -> list[str]:
        return [f"cargo:rustc-link-lib={self.kind}={self.library}"]


class LinkPlan(BaseModel):
    """Everything emitted to the linker driver, in emission order."""

    search_paths: list[Path] = Field(default_factory=list)
    directives: list[LinkDirective] = Field(default_factory=list)
    link_args: list[str] = Field(default_factory=list)
    rerun_if_changed: list[str] = Field(default_factory=list)
    rerun_if_env_changed: list[str] = Field(default_factory=list)

    @property
    def libraries(self) -> list[str]:
        return [d.library for d in self.directives]

    def add_search_path(self, path: Path) -> None:
        if path not in self.search_paths:
            self.search_paths.append(path)

    def cargo_lines(self) -> list[str]:
        """Render as Cargo build-script protocol lines."""
        lines = [f"cargo:rerun-if-changed={p}" for p in self.rerun_if_changed]
        lines += [f"cargo:rerun-if-env-changed={v}" for v in self.rerun_if_env_changed]
        lines += [f"cargo:rustc-link-search=native={p}" for p in self.search_paths]
        for directive in self.directives:
            lines += directive.cargo_lines()
        lines += [f"cargo:rustc-link-arg={arg}" for arg in self.link_args]
        return lines

    def to_dict(self) -> dict[str, Any]:
        return {
            "search_paths": [str(p) for p in self.search_paths],
            "libraries": [
                {"name": d.library, "search_path": str(d.search_path), "kind": d.kind}
                for d in self.directives
            ],
            "link_args": list(self.link_args),
        }


class RuntimeImage(BaseModel):
    """The directory holding every shared library needed at load time."""

    directory: Path
    copied: list[Path] = Field(default_factory=list)
    failures: dict[str, str] = Field(default_factory=dict)
    present: dict[str, bool] = Field(default_factory=dict)

    @property
    def missing(self) -> list[str]:
        return [name for name, ok in self.present.items() if not ok]

    def to_dict(self) -> dict[str, Any]:
        return {
            "directory": str(self.directory),
            "copied": len(self.copied),
            "failures": dict(self.failures),
            "present": dict(self.present),
        }


class BuildResult(BaseModel):
    """Outcome of a complete, successful run."""

    prefixes: dict[BackendKind, LibraryPrefix]
    link_plan: LinkPlan
    runtime_image: RuntimeImage
    recovered: list[BackendKind] = Field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "prefixes": {
                kind.value: {"root": str(p.root), "source": p.source.label}
                for kind, p in self.prefixes.items()
            },
            "link": self.link_plan.to_dict(),
            "runtime_image": self.runtime_image.to_dict(),
            "recovered": [k.value for k in self.recovered],
        }
