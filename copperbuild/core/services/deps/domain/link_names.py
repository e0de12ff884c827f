"""
L1 Domain — Library name derivation (pure).

Turns file names found under a prefix's ``lib/`` into the names the
linker expects: ``libtorch_cpu.so`` → ``torch_cpu``,
``c10.lib`` → ``c10``.
"""

from __future__ import annotations

from collections.abc import Iterable


def library_name(file_name: str, extension: str) -> str | None:
    """Derive the linker library name from a file name.

    Returns None when the file does not carry ``extension``. Only the
    final suffix counts, so ``libfoo.so.1`` is not a ``.so`` file.
    """
    if not file_name.lower().endswith(extension.lower()):
        return None
    stem = file_name[: -len(extension)]
    if not stem:
        return None
    if stem.startswith("lib") and len(stem) > 3:
        stem = stem[3:]
    return stem


def unique_library_names(
    file_names: Iterable[str],
    extension: str,
    seen: set[str] | None = None,
) -> list[str]:
    """Distinct library names in first-seen order.

    ``seen`` is shared across calls so a name is emitted at most once
    per run even when several directories provide it.
    """
    seen = seen if seen is not None else set()
    names: list[str] = []
    for file_name in file_names:
        name = library_name(file_name, extension)
        if name is None or name in seen:
            continue
        seen.add(name)
        names.append(name)
    return names
