"""
L0 Data — Module-level constants.

Pure data. No logic. No imports beyond stdlib.
"""

from __future__ import annotations

# Architecture name normalization (platform.machine() → canonical).
# Upstream archive names use uname-style names, so we normalize to those.
_IARCH_MAP: dict[str, str] = {
    "x86_64": "x86_64",
    "amd64": "x86_64",     # Windows reports AMD64
    "x64": "x86_64",
    "aarch64": "arm64",
    "arm64": "arm64",      # macOS (Darwin reports arm64)
    "armv7l": "armhf",
    "i686": "i386",
    "i386": "i386",
}

# platform.system().lower() → canonical OS name
_OS_MAP: dict[str, str] = {
    "windows": "windows",
    "linux": "linux",
    "darwin": "darwin",
}

# Extension scanned for link directives, per OS.
LINK_EXTENSIONS: dict[str, str] = {
    "windows": ".lib",
    "linux": ".so",
    "darwin": ".dylib",
}

# Download transfer tuning
DOWNLOAD_CHUNK_SIZE = 8192
DOWNLOAD_USER_AGENT = "copperbuild/0.1"

# Clean-build retry policy for the CMake build tree
CLEAN_ATTEMPTS = 5
CLEAN_DELAY = 0.5
