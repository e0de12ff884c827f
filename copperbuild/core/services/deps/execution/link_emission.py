"""
L4 Execution — Scan library directories and build the link plan.

One search-path directive per scanned directory, one library
directive per distinct library name for the whole run. The glue
library is always linked, after the backend libraries it depends on.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from copperbuild.core.models.backend import HostPlatform, LibraryPrefix
from copperbuild.core.models.link import LinkDirective, LinkPlan
from copperbuild.core.services.deps.domain.link_names import unique_library_names
from copperbuild.core.services.deps.domain.platform import link_extension

logger = logging.getLogger(__name__)


def scan_directory(
    directory: Path,
    extension: str,
    seen: set[str],
) -> list[LinkDirective]:
    """Directives for every not-yet-seen library in ``directory``."""
    if not directory.is_dir():
        logger.warning("Library directory %s not found", directory)
        return []

    try:
        files = sorted(p.name for p in directory.iterdir() if p.is_file())
    except OSError as e:
        logger.warning("Cannot list %s: %s", directory, e)
        return []

    directives = [
        LinkDirective(search_path=directory, library=name)
        for name in unique_library_names(files, extension, seen)
    ]
    for d in directives:
        logger.info("Linked library: %s (%s)", d.library, directory)
    return directives


def build_link_plan(
    prefixes: Iterable[LibraryPrefix],
    glue_dirs: list[Path],
    glue_library: str,
    host: HostPlatform,
    *,
    runtime_dir: Path | None = None,
    rerun_if_changed: list[str] | None = None,
    rerun_if_env_changed: list[str] | None = None,
) -> LinkPlan:
    """Assemble every linker instruction for a successful build.

    Args:
        prefixes: Validated backend prefixes, in link order.
        glue_dirs: Candidate output directories of the glue library.
        glue_library: Library name of the glue library (no ``lib``, no suffix).
        host: Host platform (decides the scanned extension).
        runtime_dir: Embedded as rpath on non-Windows hosts.
    """
    extension = link_extension(host)
    plan = LinkPlan(
        rerun_if_changed=list(rerun_if_changed or []),
        rerun_if_env_changed=list(rerun_if_env_changed or []),
    )
    seen: set[str] = set()

    existing_glue_dirs = [d for d in glue_dirs if d.is_dir()]
    for d in existing_glue_dirs:
        plan.add_search_path(d)

    for prefix in prefixes:
        plan.add_search_path(prefix.lib_dir)
        plan.directives += scan_directory(prefix.lib_dir, extension, seen)

    for d in existing_glue_dirs:
        plan.directives += scan_directory(d, extension, seen)

    if glue_library not in seen:
        seen.add(glue_library)
        where = existing_glue_dirs[0] if existing_glue_dirs else glue_dirs[0]
        plan.directives.append(LinkDirective(search_path=where, library=glue_library))
        logger.info("Linked library: %s (glue)", glue_library)

    if runtime_dir is not None and not host.is_windows:
        plan.link_args.append(f"-Wl,-rpath,{runtime_dir}")

    logger.info(
        "Link plan: %d search path(s), %d librar%s",
        len(plan.search_paths), len(plan.directives),
        "y" if len(plan.directives) == 1 else "ies",
    )
    return plan
