"""
Environment stores — persist a named variable at a named scope.

The orchestration code never branches on the platform to persist
state; it asks a store. Every store is idempotent: setting the same
variable twice, or appending a path entry that is already present,
leaves the end state unchanged.

    process   os.environ of the current process (and its children)
    user      POSIX: a marker-delimited block in a shell profile
              Windows: HKCU via setx / PowerShell
    machine   Windows only: HKLM via setx /M / PowerShell
"""

from __future__ import annotations

import logging
import os
import subprocess
from abc import ABC, abstractmethod
from collections.abc import Callable, MutableMapping
from pathlib import Path

from copperbuild.core.models.backend import HostPlatform

logger = logging.getLogger(__name__)

# Timeout for shell calls used to persist variables
ENV_PERSIST_TIMEOUT = 30

# Marker lines delimiting the block we own in a POSIX shell profile
PROFILE_BLOCK_BEGIN = "# >>> copperbuild >>>"
PROFILE_BLOCK_END = "# <<< copperbuild <<<"


class EnvironmentStore(ABC):
    """Capability: persist environment variables somewhere."""

    @property
    @abstractmethod
    def scope(self) -> str:
        """``process``, ``user`` or ``machine``."""

    @abstractmethod
    def set_variable(self, name: str, value: str) -> None:
        """Set ``name`` to ``value``. Raises OSError on failure."""

    @abstractmethod
    def append_path(self, name: str, entry: str, separator: str) -> bool:
        """Add ``entry`` to the list variable ``name`` unless present.

        Returns:
            True if the entry was added, False if it was already there.
        """

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} scope={self.scope!r}>"


class ProcessEnvironmentStore(EnvironmentStore):
    """Mutates a mapping (``os.environ`` by default)."""

    def __init__(self, environ: MutableMapping[str, str] | None = None):
        self._environ = environ if environ is not None else os.environ

    @property
    def scope(self) -> str:
        return "process"

    def set_variable(self, name: str, value: str) -> None:
        self._environ[name] = value

    def append_path(self, name: str, entry: str, separator: str) -> bool:
        current = self._environ.get(name, "")
        parts = [p for p in current.split(separator) if p]
        if entry in parts:
            return False
        self._environ[name] = separator.join([*parts, entry])
        return True


class ProfileEnvironmentStore(EnvironmentStore):
    """Maintains an ``export`` block in a POSIX shell profile.

    Only the lines between the copperbuild markers are ours; the rest
    of the file is left untouched. Changes take effect in new shells.
    """

    def __init__(self, profile: Path | None = None):
        self.profile = profile or Path.home() / ".profile"

    @property
    def scope(self) -> str:
        return "user"

    def _read(self) -> tuple[list[str], list[str], list[str]]:
        """Split the profile into (before, our block, after)."""
        try:
            lines = self.profile.read_text(encoding="utf-8").splitlines()
        except FileNotFoundError:
            return [], [], []
        if PROFILE_BLOCK_BEGIN in lines and PROFILE_BLOCK_END in lines:
            start = lines.index(PROFILE_BLOCK_BEGIN)
            end = lines.index(PROFILE_BLOCK_END, start)
            return lines[:start], lines[start + 1:end], lines[end + 1:]
        return lines, [], []

    def _write(self, before: list[str], block: list[str], after: list[str]) -> None:
        out = [*before, PROFILE_BLOCK_BEGIN, *block, PROFILE_BLOCK_END, *after]
        self.profile.parent.mkdir(parents=True, exist_ok=True)
        self.profile.write_text("\n".join(out) + "\n", encoding="utf-8")

    def set_variable(self, name: str, value: str) -> None:
        before, block, after = self._read()
        line = f'export {name}="{value}"'
        if line in block:
            return
        block = [b for b in block if not b.startswith(f"export {name}=")]
        block.append(line)
        self._write(before, block, after)
        logger.debug("Profile %s: %s", self.profile, line)

    def append_path(self, name: str, entry: str, separator: str) -> bool:
        before, block, after = self._read()
        line = (
            f'case "{separator}${{{name}}}{separator}" in *"{separator}{entry}{separator}"*) ;; '
            f'*) export {name}="${{{name}:+${{{name}}}{separator}}}{entry}" ;; esac'
        )
        if line in block:
            return False
        block.append(line)
        self._write(before, block, after)
        return True


Runner = Callable[..., subprocess.CompletedProcess]


class WindowsEnvironmentStore(EnvironmentStore):
    """Persists to the Windows registry through ``setx`` and PowerShell."""

    def __init__(self, scope: str = "user", runner: Runner = subprocess.run):
        if scope not in ("user", "machine"):
            raise ValueError(f"Unsupported Windows scope: {scope}")
        self._scope = scope
        self._run = runner

    @property
    def scope(self) -> str:
        return self._scope

    @property
    def _target(self) -> str:
        return "Machine" if self._scope == "machine" else "User"

    def _call(self, cmd: list[str]) -> str:
        result = self._run(
            cmd, capture_output=True, text=True, timeout=ENV_PERSIST_TIMEOUT,
        )
        if result.returncode != 0:
            detail = (result.stderr or result.stdout or "").strip()
            raise OSError(f"{cmd[0]} exited with {result.returncode}: {detail}")
        return result.stdout or ""

    def _powershell(self, script: str) -> str:
        return self._call(["powershell", "-NoProfile", "-NonInteractive", "-Command", script])

    def set_variable(self, name: str, value: str) -> None:
        cmd = ["setx", name, value]
        if self._scope == "machine":
            cmd.append("/M")
        self._call(cmd)

    def append_path(self, name: str, entry: str, separator: str) -> bool:
        current = self._powershell(
            f"[Environment]::GetEnvironmentVariable('{name}', '{self._target}')"
        ).strip()
        parts = [p for p in current.split(separator) if p]
        if entry.lower().rstrip("\\") in (p.lower().rstrip("\\") for p in parts):
            return False
        value = separator.join([*parts, entry])
        self._powershell(
            f"[Environment]::SetEnvironmentVariable('{name}', '{value}', '{self._target}')"
        )
        return True


def default_store(
    host: HostPlatform,
    scope: str,
    profile: Path | None = None,
) -> EnvironmentStore | None:
    """The persistent store for ``scope`` on ``host``.

    Returns None for ``process`` scope (the process store is always
    applied separately) and for scopes the host has no mechanism for.
    """
    if scope == "process":
        return None
    if host.is_windows:
        return WindowsEnvironmentStore(scope)
    if scope == "user":
        return ProfileEnvironmentStore(profile)
    logger.warning("Scope '%s' is not supported on %s; using process scope only", scope, host.os)
    return None
