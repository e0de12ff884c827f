"""
L1 Domain — Host platform description (pure).

Normalizes ``platform.system()`` / ``platform.machine()`` into the
names used by the backend table. No I/O beyond reading those two
values, and both can be injected for tests.
"""

from __future__ import annotations

import platform as _platform
from pathlib import Path

from copperbuild.core.models.backend import HostPlatform
from copperbuild.core.services.deps.data.constants import _IARCH_MAP, _OS_MAP, LINK_EXTENSIONS


def detect_host(system: str | None = None, machine: str | None = None) -> HostPlatform:
    """Describe the current (or a simulated) host.

    Args:
        system: Override for ``platform.system()``.
        machine: Override for ``platform.machine()``.
    """
    raw_os = (system if system is not None else _platform.system()).lower()
    raw_arch = machine if machine is not None else _platform.machine()
    os_name = _OS_MAP.get(raw_os, raw_os)
    arch = _IARCH_MAP.get(raw_arch, _IARCH_MAP.get(raw_arch.lower(), raw_arch.lower()))
    return HostPlatform(os=os_name, arch=arch)


def link_extension(host: HostPlatform) -> str:
    """Extension of the files the linker is pointed at (``.lib``, ``.so``, ``.dylib``)."""
    return LINK_EXTENSIONS.get(host.os, ".so")


def glue_output_dirs(build_dir: Path, host: HostPlatform) -> list[Path]:
    """Where CMake leaves the compiled glue library.

    Multi-config Visual Studio generators write into ``<build>/Release``;
    some project layouts nest one more ``Release``. Single-config
    generators write into the build directory itself.
    """
    if host.is_windows:
        return [build_dir / "Release" / "Release", build_dir / "Release"]
    return [build_dir]


def default_generator(host: HostPlatform) -> list[str]:
    """CMake generator arguments for the host toolchain."""
    if host.is_windows:
        return ["-G", "Visual Studio 17 2022", "-A", "x64"]
    return ["-G", "Unix Makefiles"]


def library_search_var(host: HostPlatform) -> str | None:
    """Environment variable the dynamic loader searches, if any."""
    if host.is_windows:
        return "PATH"
    if host.is_macos:
        return "DYLD_LIBRARY_PATH"
    return "LD_LIBRARY_PATH"


def path_separator(host: HostPlatform) -> str:
    return ";" if host.is_windows else ":"


def default_managed_root(host: HostPlatform, home: Path | None = None) -> Path:
    """Per-user directory holding downloaded backends."""
    home = home or Path.home()
    if host.is_windows:
        return home / "AppData" / "Local" / "copperbuild"
    if host.is_macos:
        return home / "Library" / "Application Support" / "copperbuild"
    return home / ".local" / "share" / "copperbuild"
