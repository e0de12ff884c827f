"""
L4 Execution — Populate the runtime directory.

Copies the glue library and every backend runtime library next to
the consuming executable. The build has already succeeded when this
runs, so nothing here is fatal: copy failures and missing libraries
are logged and reported in the ``RuntimeImage``.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Mapping
from pathlib import Path

from copperbuild.core.models.link import RuntimeImage

logger = logging.getLogger(__name__)


def resolve_runtime_dir(
    explicit: str | Path | None,
    environ: Mapping[str, str],
    project_root: Path,
) -> Path:
    """Where runtime libraries go.

    Precedence: explicit setting, then Cargo's ``OUT_DIR``
    (``target/<profile>/build/<pkg>/out`` → ``target/<profile>``),
    then ``<project>/target/debug``.
    """
    if explicit:
        return Path(explicit)
    out_dir = environ.get("OUT_DIR")
    if out_dir:
        parents = Path(out_dir).parents
        if len(parents) >= 3:
            return parents[2]
    return project_root / "target" / "debug"


def _copy_file(src: Path, dest_dir: Path, image: RuntimeImage) -> None:
    dest = dest_dir / src.name
    try:
        shutil.copy2(src, dest)
    except OSError as e:
        logger.warning("Failed to copy %s: %s", src.name, e)
        image.failures[str(src)] = str(e)
        return
    logger.debug("Copied %s -> %s", src, dest)
    if dest not in image.copied:
        image.copied.append(dest)


def copy_directory(source_dir: Path, image: RuntimeImage) -> int:
    """Copy every regular file directly under ``source_dir``."""
    if not source_dir.is_dir():
        logger.warning("Source directory %s does not exist", source_dir)
        return 0
    count = 0
    try:
        entries = sorted(source_dir.iterdir())
    except OSError as e:
        logger.warning("Cannot list %s: %s", source_dir, e)
        image.failures[str(source_dir)] = str(e)
        return 0
    for entry in entries:
        if entry.is_file():
            _copy_file(entry, image.directory, image)
            count += 1
    logger.info("Copied %d file(s) from %s", count, source_dir)
    return count


def populate_runtime_image(
    runtime_dir: Path,
    source_dirs: list[Path],
    critical_files: list[Path],
    expected: list[str],
) -> RuntimeImage:
    """Fill ``runtime_dir`` and check the libraries the program needs.

    Args:
        runtime_dir: Destination directory (created if needed).
        source_dirs: Directories whose files are copied wholesale.
        critical_files: Specific libraries copied explicitly.
        expected: File names that must be present afterwards.
    """
    image = RuntimeImage(directory=runtime_dir)
    try:
        runtime_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.warning("Cannot create runtime directory %s: %s", runtime_dir, e)
        image.failures[str(runtime_dir)] = str(e)
        image.present = {name: False for name in expected}
        return image

    for source in source_dirs:
        copy_directory(source, image)

    for lib in critical_files:
        if lib.is_file():
            _copy_file(lib, runtime_dir, image)
        else:
            logger.warning("Library not found at %s", lib)

    for name in expected:
        found = (runtime_dir / name).is_file()
        image.present[name] = found
        if found:
            logger.info("%s found in %s", name, runtime_dir)
        else:
            logger.warning("%s not found in %s", name, runtime_dir)

    return image
