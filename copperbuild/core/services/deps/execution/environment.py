"""
L4 Execution — Record a resolved prefix in the environment.

Best-effort by contract: nothing here raises. Every failure becomes
a warning and an entry in the returned ``errors`` list, because a
prefix that could not be persisted is still perfectly usable for the
build running right now (the process store is always applied first).
"""

from __future__ import annotations

import logging
import subprocess
from typing import Any

from copperbuild.adapters.env_store import EnvironmentStore, ProcessEnvironmentStore
from copperbuild.core.models.backend import HostPlatform, LibraryPrefix
from copperbuild.core.services.deps.data.backends import get_backend
from copperbuild.core.services.deps.domain.platform import library_search_var, path_separator

logger = logging.getLogger(__name__)

HEADER_SEARCH_VAR = "CPLUS_INCLUDE_PATH"


def _planned_entries(prefix: LibraryPrefix, host: HostPlatform) -> tuple[
    list[tuple[str, str]], list[tuple[str, str]]
]:
    """(variables, path-list appends) to persist for ``prefix``."""
    spec = get_backend(prefix.kind)
    variables = [(spec.env_var, str(prefix.root))]
    appends: list[tuple[str, str]] = []

    search_var = library_search_var(host)
    if host.is_windows:
        appends.append(("PATH", str(prefix.lib_dir)))
        appends.append(("PATH", str(prefix.bin_dir)))
    elif search_var:
        appends.append((search_var, str(prefix.lib_dir)))

    appends.append((HEADER_SEARCH_VAR, str(prefix.include_dir)))
    return variables, appends


def _apply(store: EnvironmentStore, variables, appends, separator: str) -> dict[str, Any]:
    persisted: list[str] = []
    errors: list[str] = []

    for name, value in variables:
        try:
            store.set_variable(name, value)
            persisted.append(f"{store.scope}:{name}")
        except (OSError, subprocess.SubprocessError) as e:
            errors.append(f"{store.scope}:{name}: {e}")

    for name, entry in appends:
        try:
            if store.append_path(name, entry, separator):
                persisted.append(f"{store.scope}:{name}+={entry}")
        except (OSError, subprocess.SubprocessError) as e:
            errors.append(f"{store.scope}:{name}+={entry}: {e}")

    return {"persisted": persisted, "errors": errors}


def configure_environment(
    prefix: LibraryPrefix,
    host: HostPlatform,
    *,
    process_store: EnvironmentStore | None = None,
    persistent_store: EnvironmentStore | None = None,
) -> dict[str, Any]:
    """Persist ``prefix`` so the native build and the final executable find it.

    Args:
        prefix: A validated backend prefix.
        host: Host platform (decides which variables apply).
        process_store: Store for the current process (default ``os.environ``).
        persistent_store: Optional user/machine store.

    Returns:
        ``{"ok": bool, "persisted": [...], "errors": [...]}``
    """
    spec = get_backend(prefix.kind)
    separator = path_separator(host)
    variables, appends = _planned_entries(prefix, host)

    stores: list[EnvironmentStore] = [process_store or ProcessEnvironmentStore()]
    if persistent_store is not None:
        stores.append(persistent_store)

    persisted: list[str] = []
    errors: list[str] = []
    for store in stores:
        outcome = _apply(store, variables, appends, separator)
        persisted += outcome["persisted"]
        errors += outcome["errors"]

    for err in errors:
        logger.warning("%s: could not persist %s", spec.display_name, err)

    if persistent_store is not None and not errors:
        logger.info(
            "%s: %s=%s recorded at %s scope (open a new shell for it to take effect)",
            spec.display_name, spec.env_var, prefix.root, persistent_store.scope,
        )
    else:
        logger.info("%s: %s=%s set for this process", spec.display_name, spec.env_var, prefix.root)

    return {"ok": not errors, "persisted": persisted, "errors": errors}
