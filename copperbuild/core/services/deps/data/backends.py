"""
L0 Data — Backend descriptor table.

Everything that differs between LibTorch and TensorFlow lives here:
which files prove a prefix is usable, where to look for one, what
to download when nothing is found, which libraries the runtime
directory must contain, and what CMake prints when it cannot find
the backend.

Pure data. The only logic is lookup by ``BackendKind``.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from copperbuild.core.models.archive import ArchiveFamily
from copperbuild.core.models.backend import BackendKind


@dataclass(frozen=True)
class ArchiveSource:
    """A pinned download for one (backend, os, arch)."""

    url: str
    family: ArchiveFamily
    nested: bool = False


@dataclass(frozen=True)
class BackendSpec:
    """Static description of one backend."""

    kind: BackendKind
    display_name: str
    env_var: str
    vendor_dir: str

    # Validation signals (paths relative to the prefix root)
    descriptor: str | None = None           # sufficient on its own
    header: str | None = None               # required together with a library
    library_stem: str = ""                  # "torch" → torch.dll / libtorch.so

    system_paths: dict[str, str] = field(default_factory=dict)    # os → path
    archives: dict[str, ArchiveSource] = field(default_factory=dict)  # "os-arch" → src

    signatures: tuple[str, ...] = ()
    import_renames: dict[str, tuple[tuple[str, str], ...]] = field(default_factory=dict)

    def library_files(self, os_name: str) -> tuple[str, ...]:
        """File names under lib/ that count as the backend's library."""
        if os_name == "windows":
            return (f"{self.library_stem}.dll", f"{self.library_stem}.lib")
        if os_name == "darwin":
            return (f"lib{self.library_stem}.dylib",)
        return (f"lib{self.library_stem}.so",)

    def critical_library(self, os_name: str) -> str:
        """The runtime library the consuming executable cannot start without."""
        return self.library_files(os_name)[0]


_LIBTORCH_VERSION = "2.1.0"
_TF_VERSION = "2.15.0"
_TORCH_BASE = "https://download.pytorch.org/libtorch/cpu"
_TF_BASE = "https://storage.googleapis.com/tensorflow/libtensorflow"


LIBTORCH = BackendSpec(
    kind=BackendKind.LIBTORCH,
    display_name="LibTorch",
    env_var="LIBTORCH",
    vendor_dir="libtorch",
    descriptor="share/cmake/Torch/TorchConfig.cmake",
    library_stem="torch",
    system_paths={
        "windows": "C:\\libtorch",
        "linux": "/opt/libtorch",
        "darwin": "/usr/local/libtorch",
    },
    archives={
        "linux-x86_64": ArchiveSource(
            f"{_TORCH_BASE}/libtorch-cxx11-abi-shared-with-deps-{_LIBTORCH_VERSION}%2Bcpu.zip",
            ArchiveFamily.ZIP,
            nested=True,
        ),
        "windows-x86_64": ArchiveSource(
            f"{_TORCH_BASE}/libtorch-win-shared-with-deps-{_LIBTORCH_VERSION}%2Bcpu.zip",
            ArchiveFamily.ZIP,
            nested=True,
        ),
        "darwin-x86_64": ArchiveSource(
            f"{_TORCH_BASE}/libtorch-macos-x86_64-{_LIBTORCH_VERSION}.zip",
            ArchiveFamily.ZIP,
            nested=True,
        ),
        "darwin-arm64": ArchiveSource(
            f"{_TORCH_BASE}/libtorch-macos-arm64-{_LIBTORCH_VERSION}.zip",
            ArchiveFamily.ZIP,
            nested=True,
        ),
    },
    signatures=(
        'Could not find a package configuration file provided by "Torch"',
        "Torch_DIR-NOTFOUND",
        "torch/torch.h: No such file",
        "Cannot open include file: 'torch/torch.h'",
    ),
    # MSVC resolves import libraries without the "lib" prefix
    import_renames={
        "windows": (
            ("libprotobuf.lib", "protobuf.lib"),
            ("libprotoc.lib", "protoc.lib"),
            ("libittnotify.lib", "ittnotify.lib"),
            ("libprotobuf-lite.lib", "protobuf-lite.lib"),
        ),
    },
)


# The TensorFlow C library is only published for x86_64.
TENSORFLOW = BackendSpec(
    kind=BackendKind.TENSORFLOW,
    display_name="TensorFlow",
    env_var="TENSORFLOW_ROOT",
    vendor_dir="libtensorflow",
    header="include/tensorflow/c/c_api.h",
    library_stem="tensorflow",
    system_paths={
        "windows": "C:\\libtensorflow",
        "linux": "/opt/libtensorflow",
        "darwin": "/usr/local/libtensorflow",
    },
    archives={
        "linux-x86_64": ArchiveSource(
            f"{_TF_BASE}/libtensorflow-cpu-linux-x86_64-{_TF_VERSION}.tar.gz",
            ArchiveFamily.GZIP_TAR,
        ),
        "windows-x86_64": ArchiveSource(
            f"{_TF_BASE}/libtensorflow-cpu-windows-x86_64-{_TF_VERSION}.zip",
            ArchiveFamily.ZIP,
        ),
        "darwin-x86_64": ArchiveSource(
            f"{_TF_BASE}/libtensorflow-cpu-darwin-x86_64-{_TF_VERSION}.tar.gz",
            ArchiveFamily.GZIP_TAR,
        ),
    },
    signatures=(
        "tensorflow/c/c_api.h: No such file",
        "Cannot open include file: 'tensorflow/c/c_api.h'",
        "Could NOT find TensorFlow",
        "TensorFlow_DIR-NOTFOUND",
    ),
)


BACKENDS: dict[BackendKind, BackendSpec] = {
    BackendKind.LIBTORCH: LIBTORCH,
    BackendKind.TENSORFLOW: TENSORFLOW,
}


def get_backend(kind: BackendKind | str) -> BackendSpec:
    """Look up a backend descriptor by kind (or its string value)."""
    return BACKENDS[BackendKind(kind)]
