"""
L3 Detection — Prefix validation.

Read-only probes answering "is this directory a complete, usable
installation of backend X?". Never raises: a missing path is a fast
``ABSENT``, an unreadable one is ``INVALID``.

Rules:
    libtorch    descriptor file (TorchConfig.cmake), or failing that
                the platform shared/import library under lib/
    tensorflow  the C API header AND the platform library under lib/;
                either one alone is an incomplete install
"""

from __future__ import annotations

import logging
from pathlib import Path

from copperbuild.core.models.backend import BackendKind, HostPlatform, PrefixStatus
from copperbuild.core.services.deps.data.backends import BackendSpec, get_backend
from copperbuild.core.services.deps.domain.platform import detect_host

logger = logging.getLogger(__name__)


def _has_library(root: Path, spec: BackendSpec, host: HostPlatform) -> bool:
    lib_dir = root / "lib"
    return any((lib_dir / name).is_file() for name in spec.library_files(host.os))


def inspect_prefix(
    prefix: Path | str | None,
    kind: BackendKind,
    host: HostPlatform | None = None,
) -> PrefixStatus:
    """Classify a candidate directory as absent, invalid, or valid."""
    if prefix is None or str(prefix) == "":
        return PrefixStatus.ABSENT

    root = Path(prefix)
    spec = get_backend(kind)
    host = host or detect_host()

    try:
        if not root.is_dir():
            return PrefixStatus.ABSENT

        if spec.descriptor and (root / spec.descriptor).is_file():
            logger.debug("%s: package descriptor found in %s", spec.display_name, root)
            return PrefixStatus.VALID

        has_lib = _has_library(root, spec, host)

        if spec.header:
            has_header = (root / spec.header).is_file()
            if has_header and has_lib:
                return PrefixStatus.VALID
            logger.debug(
                "%s: %s incomplete (header=%s, library=%s)",
                spec.display_name, root, has_header, has_lib,
            )
            return PrefixStatus.INVALID

        if has_lib:
            logger.debug("%s: shared library found in %s", spec.display_name, root / "lib")
            return PrefixStatus.VALID
    except OSError as e:
        logger.debug("%s: cannot probe %s: %s", spec.display_name, root, e)

    return PrefixStatus.INVALID


def is_valid(
    prefix: Path | str | None,
    kind: BackendKind,
    host: HostPlatform | None = None,
) -> bool:
    """True if ``prefix`` is a complete installation of ``kind``."""
    return inspect_prefix(prefix, kind, host) is PrefixStatus.VALID
