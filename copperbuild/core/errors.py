"""
Error taxonomy — every fatal outcome of a resolution/build run.

"Absent" and "invalid" prefixes are not errors: they are
``PrefixStatus`` values that drive the resolution chain forward.
Everything here is fatal once it reaches the top-level run, which
turns it into a non-zero exit with the message on stderr.
"""

from __future__ import annotations


class CopperbuildError(Exception):
    """Base class for every unrecovered failure."""


class ConfigError(CopperbuildError):
    """Raised when copperbuild.yml is invalid or unreadable."""


class DownloadError(CopperbuildError):
    """Network fetch failed after exhausting every attempt."""

    def __init__(self, url: str, attempts: int, reason: str):
        self.url = url
        self.attempts = attempts
        self.reason = reason
        super().__init__(
            f"Download of {url} failed after {attempts} attempt(s): {reason}"
        )


class ArchiveFormatError(CopperbuildError):
    """Downloaded content is not the archive family we expected.

    Never retried: fetching the same URL again is assumed to return
    the same bad payload (HTML error page, truncated file, ...).
    """


class ExtractionError(CopperbuildError):
    """Archive could not be unpacked."""


class InstallError(CopperbuildError):
    """Extracted content could not be placed at its final prefix,
    or the placed prefix still fails validation."""


class UnsupportedPlatformError(CopperbuildError):
    """Managed acquisition is not offered for this OS/arch combination."""

    def __init__(self, backend: str, os_name: str, arch: str, env_var: str):
        self.backend = backend
        self.os_name = os_name
        self.arch = arch
        self.env_var = env_var
        super().__init__(
            f"Automatic download of {backend} is not supported on "
            f"{os_name}/{arch}. Install it manually and set {env_var} "
            f"to its installation prefix."
        )


class DependencyConfigError(CopperbuildError):
    """The native build tool could not locate a backend.

    ``diagnostic`` carries the captured configure output of the
    *first* failure, even when a recovery cycle ran.
    """

    def __init__(self, message: str, diagnostic: str = ""):
        self.diagnostic = diagnostic
        text = message
        if diagnostic:
            text = f"{message}\n--- configure output ---\n{diagnostic.rstrip()}"
        super().__init__(text)


class BuildError(CopperbuildError):
    """The native build step failed. Never retried."""

    def __init__(self, message: str, output: str = ""):
        self.output = output
        text = message
        if output:
            text = f"{message}\n--- build output ---\n{output.rstrip()}"
        super().__init__(text)
