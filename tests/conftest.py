"""
Shared test fixtures and configuration.
"""

import logging
import urllib.request
from pathlib import Path

import pytest

from copperbuild.core.models.backend import BackendKind, HostPlatform
from copperbuild.core.models.config import BackendSettings, BuildConfig
from copperbuild.core.services.deps.data.backends import get_backend
from tests.helpers import LINUX, TF_URL, TORCH_URL, FakeNetwork


@pytest.fixture(autouse=True)
def _restore_root_logging():
    """setup_logging() replaces root handlers; put them back after each test."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for h in root.handlers:
        if h not in handlers:
            h.close()
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A synthetic consuming repository with the glue library sources."""
    root = tmp_path / "project"
    (root / "cpp").mkdir(parents=True)
    (root / "cpp" / "lib.cpp").write_text("// glue\n")
    (root / "cpp" / "CMakeLists.txt").write_text("project(ai_copper)\n")
    return root


@pytest.fixture
def config(project: Path, tmp_path: Path) -> BuildConfig:
    """Config isolated from the real machine: no system installs, tmp managed root."""
    nowhere = tmp_path / "system"
    return BuildConfig(
        project_root=project,
        managed_root=str(tmp_path / "managed"),
        backends={
            BackendKind.LIBTORCH: BackendSettings(
                system_path=str(nowhere / "libtorch"),
                urls={"linux-x86_64": TORCH_URL},
            ),
            BackendKind.TENSORFLOW: BackendSettings(
                system_path=str(nowhere / "libtensorflow"),
                urls={"linux-x86_64": TF_URL},
            ),
        },
    )


@pytest.fixture
def make_prefix():
    """Factory: write a synthetic backend installation under ``root``.

    ``complete=False`` leaves out the library (and the LibTorch
    descriptor), producing an interrupted-install lookalike.
    """

    def _make(kind: BackendKind, root: Path, host: HostPlatform = LINUX,
              complete: bool = True, extra_libs: tuple[str, ...] = ()) -> Path:
        spec = get_backend(kind)
        (root / "lib").mkdir(parents=True, exist_ok=True)
        (root / "include").mkdir(exist_ok=True)
        if spec.header:
            header = root / spec.header
            header.parent.mkdir(parents=True, exist_ok=True)
            header.write_text("/* header */\n")
        if not complete:
            return root
        if spec.descriptor:
            descriptor = root / spec.descriptor
            descriptor.parent.mkdir(parents=True, exist_ok=True)
            descriptor.write_text("# cmake package\n")
        for name in (*spec.library_files(host.os), *extra_libs):
            (root / "lib" / name).write_bytes(b"\x7fELF")
        return root

    return _make


@pytest.fixture
def network(monkeypatch) -> FakeNetwork:
    """Replace urlopen with a scripted fake; unrouted URLs fail."""
    net = FakeNetwork()
    monkeypatch.setattr(urllib.request, "urlopen", net.urlopen)
    return net


@pytest.fixture
def sleeps() -> list[float]:
    """Recorded backoff sleeps; pass ``sleeps.append`` as ``sleep=``."""
    return []
