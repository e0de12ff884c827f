"""
L5 Orchestration — Configure, build, link, and stage runtime libraries.

Flow:
    resolve prefixes → clean build tree → cmake configure
        → (one recovery cycle on a dependency-not-found signature)
    → cmake --build → link plan → runtime image

Recovery is a heuristic: CMake's failure text is searched for the
signature strings of each backend. The strings live in the backend
table and can be extended from copperbuild.yml.
"""

from __future__ import annotations

import logging
import os
import shutil
import time
from collections.abc import Callable, MutableMapping
from pathlib import Path

from copperbuild.adapters.base import Adapter
from copperbuild.adapters.cmake import CMakeAdapter
from copperbuild.core.errors import BuildError, ConfigError, DependencyConfigError
from copperbuild.core.models.action import Action, Receipt
from copperbuild.core.models.backend import BackendKind, HostPlatform, LibraryPrefix, PrefixStatus
from copperbuild.core.models.config import BuildConfig
from copperbuild.core.models.link import BuildResult, LinkPlan, RuntimeImage
from copperbuild.core.services.deps.data.backends import BACKENDS, get_backend
from copperbuild.core.services.deps.data.constants import CLEAN_ATTEMPTS, CLEAN_DELAY
from copperbuild.core.services.deps.detection.prefix_validator import inspect_prefix
from copperbuild.core.services.deps.domain.platform import (
    default_generator,
    detect_host,
    glue_output_dirs,
)
from copperbuild.core.services.deps.execution.install import normalize_import_libraries
from copperbuild.core.services.deps.execution.link_emission import build_link_plan
from copperbuild.core.services.deps.execution.runtime_image import (
    populate_runtime_image,
    resolve_runtime_dir,
)
from copperbuild.core.services.deps.resolver.resolution_chain import ResolutionChain

logger = logging.getLogger(__name__)


def match_signatures(
    diagnostic: str,
    config: BuildConfig,
    kinds: list[BackendKind] | None = None,
) -> list[BackendKind]:
    """Backends whose dependency-not-found signature appears in ``diagnostic``."""
    text = diagnostic.lower()
    matched: list[BackendKind] = []
    for kind in kinds or list(BackendKind):
        signatures = [*get_backend(kind).signatures, *config.backend(kind).signatures]
        hit = next((s for s in signatures if s and s.lower() in text), None)
        if hit:
            logger.info("Configure output matches %s signature: %r", kind.value, hit)
            matched.append(kind)
    return matched


class BuildOrchestrator:
    """Runs one complete build for the glue library.

    Args:
        config: Build configuration.
        chain: Resolution chain (also used for forced re-acquisition).
        tool: Native build tool adapter (CMake by default).
        environ: Environment used to locate Cargo's ``OUT_DIR``.
    """

    def __init__(
        self,
        config: BuildConfig,
        *,
        chain: ResolutionChain | None = None,
        tool: Adapter | None = None,
        host: HostPlatform | None = None,
        environ: MutableMapping[str, str] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config
        self.host = host or (chain.host if chain else detect_host())
        self.environ = environ if environ is not None else os.environ
        self.chain = chain or ResolutionChain(
            config, host=self.host, environ=self.environ, sleep=sleep,
        )
        self.tool = tool or CMakeAdapter()
        self._sleep = sleep

    # ── Paths ───────────────────────────────────────────────────

    @property
    def source_dir(self) -> Path:
        return self.config.path(self.config.source_dir)

    @property
    def build_dir(self) -> Path:
        return self.config.path(self.config.build_dir)

    @property
    def glue_library(self) -> str:
        if self.host.is_windows:
            return self.config.glue_library_windows
        return self.config.glue_library

    def glue_file_name(self) -> str:
        name = self.glue_library
        if self.host.is_windows:
            return f"{name}.dll"
        if self.host.is_macos:
            return f"lib{name}.dylib"
        return f"lib{name}.so"

    # ── Steps ───────────────────────────────────────────────────

    def checked_prefixes(
        self, prefixes: dict[BackendKind, LibraryPrefix],
    ) -> dict[BackendKind, LibraryPrefix]:
        """Re-validate caller-supplied prefixes and resolve any backend left out.

        Raises:
            ConfigError: A supplied prefix does not pass validation now.
        """
        checked: dict[BackendKind, LibraryPrefix] = {}
        for kind in BackendKind:
            prefix = prefixes.get(kind)
            if prefix is None:
                checked[kind] = self.chain.resolve(kind)
                continue
            status = inspect_prefix(prefix.root, kind, self.host)
            if status is not PrefixStatus.VALID:
                raise ConfigError(
                    f"{get_backend(kind).display_name} prefix {prefix.root} is {status.value}; "
                    "refusing to link against it"
                )
            checked[kind] = prefix
        return checked

    def clean_build_dir(self) -> None:
        """Remove the previous build tree, retrying briefly on locked files."""
        build_dir = self.build_dir
        if build_dir.exists():
            logger.info("Cleaning previous build directory %s", build_dir)
            for attempt in range(1, CLEAN_ATTEMPTS + 1):
                try:
                    shutil.rmtree(build_dir)
                    break
                except OSError as e:
                    logger.debug("Clean attempt %d failed: %s", attempt, e)
                    if attempt < CLEAN_ATTEMPTS:
                        self._sleep(CLEAN_DELAY)
            else:
                logger.warning("Could not fully remove %s; reusing it", build_dir)
        build_dir.mkdir(parents=True, exist_ok=True)

    def configure_action(self, prefixes: dict[BackendKind, LibraryPrefix]) -> Action:
        prefix_path = ";".join(str(prefixes[k].root) for k in BackendKind if k in prefixes)
        if self.config.generator:
            generator = ["-G", self.config.generator]
            if self.config.generator_platform:
                generator += ["-A", self.config.generator_platform]
        else:
            generator = default_generator(self.host)

        return Action(
            id="configure",
            adapter=self.tool.name,
            args=[
                "-S", str(self.source_dir),
                "-B", str(self.build_dir),
                f"-DCMAKE_BUILD_TYPE={self.config.build_type}",
                f"-DCMAKE_PREFIX_PATH={prefix_path}",
                *generator,
            ],
            env={get_backend(k).env_var: str(p.root) for k, p in prefixes.items()},
            timeout=self.config.configure_timeout,
        )

    def build_action(self) -> Action:
        return Action(
            id="build",
            adapter=self.tool.name,
            args=["--build", str(self.build_dir), "--config", self.config.build_type],
            timeout=self.config.build_timeout,
        )

    def configure(self, prefixes: dict[BackendKind, LibraryPrefix]) -> list[BackendKind]:
        """Configure, with at most one recovery cycle.

        Mutates ``prefixes`` when a backend is re-acquired.

        Returns:
            Backends that were re-acquired (empty when the first try worked).

        Raises:
            DependencyConfigError: Configure failed and recovery was not
                possible or did not help.
        """
        receipt = self.tool.execute(self.configure_action(prefixes))
        if receipt.ok:
            logger.info("CMake configuration succeeded")
            return []

        original = receipt.diagnostic
        logger.warning("CMake configuration failed (%s)", receipt.error)

        matched = match_signatures(original, self.config, list(prefixes))
        recoverable = [k for k in matched if self.chain.supports_acquisition(k)]
        if not recoverable:
            if matched:
                names = ", ".join(get_backend(k).display_name for k in matched)
                raise DependencyConfigError(
                    f"CMake could not find {names} and automatic download is not "
                    f"available on {self.host.os}/{self.host.arch}",
                    original,
                )
            raise DependencyConfigError("CMake configuration failed", original)

        for kind in recoverable:
            spec = get_backend(kind)
            logger.warning(
                "CMake could not find %s; re-acquiring it and retrying configuration once",
                spec.display_name,
            )
            prefixes[kind] = self.chain.resolve(kind, force_download=True)

        self.clean_build_dir()
        retry = self.tool.execute(self.configure_action(prefixes))
        if not retry.ok:
            names = ", ".join(get_backend(k).display_name for k in recoverable)
            raise DependencyConfigError(
                f"CMake configuration failed again after re-acquiring {names}",
                original,
            )
        logger.info("CMake configuration succeeded after recovery")
        return recoverable

    def build(self) -> Receipt:
        receipt = self.tool.execute(self.build_action())
        if not receipt.ok:
            raise BuildError(receipt.error or "CMake build failed", receipt.output)
        logger.info("CMake build succeeded")
        return receipt

    def link_plan(
        self,
        prefixes: dict[BackendKind, LibraryPrefix],
        runtime_dir: Path,
    ) -> LinkPlan:
        return build_link_plan(
            [prefixes[k] for k in BackendKind if k in prefixes],
            glue_output_dirs(self.build_dir, self.host),
            self.glue_library,
            self.host,
            runtime_dir=runtime_dir,
            rerun_if_changed=[
                str(self.source_dir / "lib.cpp"),
                str(self.source_dir / "CMakeLists.txt"),
            ],
            rerun_if_env_changed=[spec.env_var for spec in BACKENDS.values()],
        )

    def runtime_image(
        self,
        prefixes: dict[BackendKind, LibraryPrefix],
        runtime_dir: Path,
    ) -> RuntimeImage:
        glue_dirs = [d for d in glue_output_dirs(self.build_dir, self.host) if d.is_dir()]
        ordered = [prefixes[k] for k in BackendKind if k in prefixes]
        critical = [
            p.lib_dir / get_backend(p.kind).critical_library(self.host.os) for p in ordered
        ]
        expected = [self.glue_file_name(), *(c.name for c in critical)]
        return populate_runtime_image(
            runtime_dir,
            [*glue_dirs, *(p.lib_dir for p in ordered)],
            critical,
            expected,
        )

    # ── Entry point ─────────────────────────────────────────────

    def run(
        self,
        prefixes: dict[BackendKind, LibraryPrefix] | None = None,
        *,
        runtime_dir: Path | None = None,
    ) -> BuildResult:
        """Resolve (unless given), configure, build, link, stage.

        Raises:
            CopperbuildError: Any unrecovered failure.
        """
        if prefixes is None:
            prefixes = self.chain.resolve_all()
        else:
            prefixes = self.checked_prefixes(prefixes)

        if self.host.is_windows:
            for prefix in prefixes.values():
                normalize_import_libraries(prefix.root, get_backend(prefix.kind), self.host)

        self.clean_build_dir()
        recovered = self.configure(prefixes)
        self.build()

        runtime_dir = runtime_dir or resolve_runtime_dir(
            self.config.runtime_dir and self.config.path(self.config.runtime_dir),
            self.environ,
            self.config.project_root,
        )
        plan = self.link_plan(prefixes, runtime_dir)
        image = self.runtime_image(prefixes, runtime_dir)

        return BuildResult(
            prefixes=prefixes,
            link_plan=plan,
            runtime_image=image,
            recovered=recovered,
        )
