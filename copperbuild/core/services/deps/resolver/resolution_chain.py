"""
L2 Resolver — Produce one validated prefix per backend.

Candidate sources are tried strictly in rank order and the first one
that passes the prefix validator wins:

    1. override   LIBTORCH / TENSORFLOW_ROOT (or ``override`` in config)
    2. system     platform-conventional install path
    3. vendor     <project>/third_party/<backend>
    4. managed    <managed_root>/<os>-<arch>/<backend>, downloaded on demand

Ranks 2–4 record the accepted prefix in the environment; a rank-1
value was put there by whoever set it. An override that exists but
fails validation is logged as a downgrade and resolution continues.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import time
from collections.abc import Callable, Iterable, MutableMapping
from pathlib import Path
from typing import Any

from copperbuild.adapters.env_store import (
    EnvironmentStore,
    ProcessEnvironmentStore,
    default_store,
)
from copperbuild.core.errors import InstallError, UnsupportedPlatformError
from copperbuild.core.models.archive import ArchiveFamily, ArchiveJob
from copperbuild.core.models.backend import (
    BackendKind,
    Candidate,
    CandidateSource,
    HostPlatform,
    LibraryPrefix,
    PrefixStatus,
)
from copperbuild.core.models.config import BuildConfig
from copperbuild.core.services.deps.data.backends import ArchiveSource, BackendSpec, get_backend
from copperbuild.core.services.deps.detection.prefix_validator import inspect_prefix
from copperbuild.core.services.deps.domain.platform import default_managed_root, detect_host
from copperbuild.core.services.deps.execution.archive import check_family, extract
from copperbuild.core.services.deps.execution.download import download
from copperbuild.core.services.deps.execution.environment import configure_environment
from copperbuild.core.services.deps.execution.install import install

logger = logging.getLogger(__name__)

Validator = Callable[[Path | None, BackendKind, HostPlatform], PrefixStatus]
Configurer = Callable[[LibraryPrefix], dict[str, Any]]


def _family_from_url(url: str) -> ArchiveFamily:
    """Expected family for a configured URL (verified later by sniffing)."""
    name = url.split("?", 1)[0].lower()
    if name.endswith(".zip"):
        return ArchiveFamily.ZIP
    if name.endswith((".tar.gz", ".tgz")):
        return ArchiveFamily.GZIP_TAR
    if name.endswith(".tar"):
        return ArchiveFamily.TAR
    return ArchiveFamily.ZIP


class ResolutionChain:
    """Resolves backends for one run.

    Args:
        config: Build configuration.
        host: Host platform (detected when omitted).
        environ: Environment to read overrides from and to update
            (``os.environ`` when omitted).
        validator: Prefix classifier; injectable for instrumentation.
        configurer: Called with each prefix accepted from ranks 2–4.
        sleep: Backoff sleep used by downloads.
    """

    def __init__(
        self,
        config: BuildConfig,
        *,
        host: HostPlatform | None = None,
        environ: MutableMapping[str, str] | None = None,
        validator: Validator = inspect_prefix,
        configurer: Configurer | None = None,
        persistent_store: EnvironmentStore | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config
        self.host = host or detect_host()
        self.environ = environ if environ is not None else os.environ
        self._validate = validator
        self._sleep = sleep
        if configurer is None:
            store = persistent_store or default_store(
                self.host,
                config.persist_scope,
                config.path(config.profile_file) if config.profile_file else None,
            )
            configurer = self._default_configurer(store)
        self._configure = configurer

    def _default_configurer(self, store: EnvironmentStore | None) -> Configurer:
        process_store = ProcessEnvironmentStore(self.environ)

        def configure(prefix: LibraryPrefix) -> dict[str, Any]:
            return configure_environment(
                prefix, self.host,
                process_store=process_store,
                persistent_store=store,
            )

        return configure

    # ── Candidate sources ───────────────────────────────────────

    @property
    def managed_root(self) -> Path:
        if self.config.managed_root:
            return self.config.path(self.config.managed_root)
        return default_managed_root(self.host)

    def managed_target(self, kind: BackendKind) -> Path:
        spec = get_backend(kind)
        return self.managed_root / self.host.tag / spec.vendor_dir

    def override_path(self, kind: BackendKind) -> Path | None:
        spec = get_backend(kind)
        value = self.environ.get(spec.env_var) or self.config.backend(kind).override
        return Path(value) if value else None

    def system_path(self, kind: BackendKind) -> Path | None:
        spec = get_backend(kind)
        value = self.config.backend(kind).system_path or spec.system_paths.get(self.host.os)
        return Path(value) if value else None

    def vendor_path(self, kind: BackendKind) -> Path:
        spec = get_backend(kind)
        return self.config.path(self.config.vendor_root) / spec.vendor_dir

    def candidates(self, kind: BackendKind) -> list[Candidate]:
        """All four ranked candidates for ``kind``."""
        return [
            Candidate(source=CandidateSource.OVERRIDE, path=self.override_path(kind)),
            Candidate(source=CandidateSource.SYSTEM, path=self.system_path(kind)),
            Candidate(source=CandidateSource.VENDOR, path=self.vendor_path(kind)),
            Candidate(source=CandidateSource.MANAGED, path=self.managed_target(kind)),
        ]

    def archive_source(self, kind: BackendKind) -> ArchiveSource | None:
        """Pinned download for ``kind`` on this host, if one exists."""
        spec = get_backend(kind)
        url = self.config.backend(kind).urls.get(self.host.tag)
        if url:
            return ArchiveSource(url, _family_from_url(url))
        return spec.archives.get(self.host.tag)

    def supports_acquisition(self, kind: BackendKind) -> bool:
        return self.archive_source(kind) is not None

    # ── Resolution ──────────────────────────────────────────────

    def _log_rejection(self, spec: BackendSpec, cand: Candidate, status: PrefixStatus) -> None:
        rank = f"[{cand.source.value}/{cand.source.label}]"
        if cand.source is CandidateSource.OVERRIDE and cand.path is not None:
            problem = (
                "does not exist" if status is PrefixStatus.ABSENT
                else f"is not a complete {spec.display_name} installation"
            )
            logger.warning(
                "%s %s %s=%s is set but %s; ignoring it and falling back "
                "to lower-priority sources",
                spec.display_name, rank, spec.env_var, cand.path, problem,
            )
        elif status is PrefixStatus.INVALID:
            logger.warning(
                "%s %s %s exists but is incomplete (interrupted or corrupted install?)",
                spec.display_name, rank, cand.path,
            )
        elif cand.path is None:
            logger.info("%s %s not set", spec.display_name, rank)
        else:
            logger.info("%s %s %s not found", spec.display_name, rank, cand.path)

    def _accept(self, kind: BackendKind, source: CandidateSource, path: Path) -> LibraryPrefix:
        spec = get_backend(kind)
        prefix = LibraryPrefix(kind=kind, root=path, source=source)
        logger.info(
            "%s [%d/%s] %s is valid, selected",
            spec.display_name, source.value, source.label, path,
        )
        if source is not CandidateSource.OVERRIDE:
            self._configure(prefix)
        return prefix

    def resolve(self, kind: BackendKind, *, force_download: bool = False) -> LibraryPrefix:
        """Resolve ``kind`` to a validated prefix.

        Args:
            kind: Backend to resolve.
            force_download: Skip ranks 1–3 and re-acquire rank 4 even
                if it currently validates.

        Raises:
            UnsupportedPlatformError: Nothing local validated and no
                download exists for this host.
            DownloadError, ArchiveFormatError, ExtractionError, InstallError:
                Acquisition failed.
        """
        kind = BackendKind(kind)
        spec = get_backend(kind)
        logger.info("Resolving %s", spec.display_name)

        if force_download:
            return self.acquire(kind)

        for cand in self.candidates(kind):
            status = self._validate(cand.path, kind, self.host)
            if status is PrefixStatus.VALID and cand.path is not None:
                return self._accept(kind, cand.source, cand.path)
            self._log_rejection(spec, cand, status)

        return self.acquire(kind)

    def resolve_all(self, kinds: Iterable[BackendKind] | None = None) -> dict[BackendKind, LibraryPrefix]:
        """Resolve every backend (independently, in enum order)."""
        return {kind: self.resolve(kind) for kind in (kinds or list(BackendKind))}

    # ── Acquisition ─────────────────────────────────────────────

    def acquire(self, kind: BackendKind) -> LibraryPrefix:
        """Download, extract and install ``kind`` into its managed target."""
        spec = get_backend(kind)
        source = self.archive_source(kind)
        if source is None:
            logger.error(
                "%s: no automatic download for %s/%s", spec.display_name, self.host.os, self.host.arch,
            )
            raise UnsupportedPlatformError(
                spec.display_name, self.host.os, self.host.arch, spec.env_var,
            )

        target = self.managed_target(kind)
        downloads = self.managed_root / "downloads"
        job = ArchiveJob(
            kind=kind,
            url=source.url,
            destination=downloads / source.url.rsplit("/", 1)[-1].split("?", 1)[0],
            family=source.family,
            platform=self.host,
            nested=source.nested,
        )
        logger.info("%s: acquiring %s → %s", spec.display_name, job.url, target)
        self._materialize(job, target)

        status = self._validate(target, kind, self.host)
        if status is not PrefixStatus.VALID:
            raise InstallError(
                f"{spec.display_name} was installed to {target} but the installation "
                f"is {status.value}; the archive at {job.url} may not contain the "
                f"expected files"
            )
        return self._accept(kind, CandidateSource.MANAGED, target)

    def _materialize(self, job: ArchiveJob, target: Path) -> None:
        settings = self.config.download
        download(
            job.url,
            job.destination,
            attempts=settings.attempts,
            backoff_step=settings.backoff_step,
            timeout=settings.timeout,
            sleep=self._sleep,
        )
        check_family(job.destination, job.family)

        # Stage next to the target so the final move is a same-volume rename
        target.parent.mkdir(parents=True, exist_ok=True)
        staging = Path(tempfile.mkdtemp(prefix=f".{job.kind.value}-", dir=target.parent))
        try:
            extract(job.destination, staging, job.family)
            install(staging, target)
        finally:
            shutil.rmtree(staging, ignore_errors=True)
        job.destination.unlink(missing_ok=True)
