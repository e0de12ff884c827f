"""
L4 Execution — Move an extracted backend into its final prefix.

Policy:
    - replace, never merge: an existing prefix is removed first
    - rename when possible (same volume), else copy + remove source
    - unwrap archives whose payload sits one directory deeper
      (``libtorch-*.zip`` → ``libtorch/lib``, ``libtorch/include``)
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from copperbuild.core.errors import InstallError
from copperbuild.core.models.backend import HostPlatform
from copperbuild.core.services.deps.data.backends import BackendSpec

logger = logging.getLogger(__name__)

_PAYLOAD_MARKERS = ("lib", "include", "bin", "share")
_IGNORED_ENTRIES = ("__MACOSX",)


def find_payload_root(extracted_root: Path) -> Path:
    """Return the directory whose children are ``lib/``, ``include/``, ...

    When the extraction root holds a single directory (ignoring macOS
    resource-fork junk and dotfiles) and none of the payload markers,
    that directory is the real payload.
    """
    if any((extracted_root / marker).is_dir() for marker in _PAYLOAD_MARKERS):
        return extracted_root

    entries = [
        p for p in extracted_root.iterdir()
        if p.name not in _IGNORED_ENTRIES and not p.name.startswith(".")
    ]
    if len(entries) == 1 and entries[0].is_dir():
        logger.info("Unwrapping nested archive directory %s", entries[0].name)
        return entries[0]
    return extracted_root


def _remove_tree(path: Path) -> None:
    if path.is_symlink() or path.is_file():
        path.unlink()
    else:
        shutil.rmtree(path)


def install(extracted_root: Path, final_prefix: Path) -> Path:
    """Place extracted content at ``final_prefix``.

    Returns:
        ``final_prefix``.

    Raises:
        InstallError: The tree could not be removed, renamed, or copied.
    """
    if not extracted_root.is_dir():
        raise InstallError(f"Extracted directory does not exist: {extracted_root}")

    payload = find_payload_root(extracted_root)

    if final_prefix.exists() or final_prefix.is_symlink():
        logger.info("Removing previous installation at %s", final_prefix)
        try:
            _remove_tree(final_prefix)
        except OSError as e:
            raise InstallError(f"Cannot remove previous installation {final_prefix}: {e}") from e

    try:
        final_prefix.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise InstallError(f"Cannot create {final_prefix.parent}: {e}") from e

    try:
        os.replace(payload, final_prefix)
        logger.info("Installed %s → %s (rename)", payload, final_prefix)
    except OSError as rename_error:
        logger.info("Rename failed (%s), copying instead", rename_error)
        try:
            shutil.copytree(payload, final_prefix, symlinks=True)
        except (OSError, shutil.Error) as e:
            shutil.rmtree(final_prefix, ignore_errors=True)
            raise InstallError(f"Cannot copy {payload} to {final_prefix}: {e}") from e
        shutil.rmtree(payload, ignore_errors=True)
        logger.info("Installed %s → %s (copy)", payload, final_prefix)

    # The wrapper directory is now empty; drop it with the extraction root
    if payload != extracted_root:
        shutil.rmtree(extracted_root, ignore_errors=True)

    return final_prefix


def normalize_import_libraries(prefix: Path, spec: BackendSpec, host: HostPlatform) -> list[str]:
    """Rename ``lib``-prefixed import libraries the MSVC linker can't find.

    Best-effort: every failure is logged and skipped.

    Returns:
        New file names that were put in place.
    """
    renamed: list[str] = []
    lib_dir = prefix / "lib"
    for old, new in spec.import_renames.get(host.os, ()):
        src, dst = lib_dir / old, lib_dir / new
        if not src.exists():
            logger.debug("No %s to rename in %s", old, lib_dir)
            continue
        try:
            os.replace(src, dst)
        except OSError as e:
            logger.warning("Failed to rename %s to %s: %s", src, dst, e)
            continue
        logger.info("Renamed %s to %s", src.name, dst.name)
        renamed.append(new)
    return renamed
