"""
Synthetic hosts, archives and network responses shared by the test suite.
"""

from __future__ import annotations

import io
import tarfile
import urllib.error
import urllib.request
import zipfile

from copperbuild.core.models.backend import HostPlatform

LINUX = HostPlatform(os="linux", arch="x86_64")
LINUX_ARM = HostPlatform(os="linux", arch="arm64")
WINDOWS = HostPlatform(os="windows", arch="x86_64")

TORCH_URL = "https://downloads.example.test/libtorch-cpu.zip"
TF_URL = "https://downloads.example.test/libtensorflow-cpu.tar.gz"


# ── Synthetic archives ──────────────────────────────────────────────


def torch_zip_bytes() -> bytes:
    """LibTorch-style zip: everything nested under ``libtorch/``."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        zf.writestr("libtorch/", "")
        zf.writestr("libtorch/lib/", "")
        zf.writestr("libtorch/lib/libtorch.so", b"\x7fELF torch")
        zf.writestr("libtorch/lib/libc10.so", b"\x7fELF c10")
        zf.writestr("libtorch/include/torch/torch.h", "#pragma once\n")
        zf.writestr("libtorch/share/cmake/Torch/TorchConfig.cmake", "# torch\n")
    return buf.getvalue()


def tar_bytes(files: dict[str, bytes], mode: str = "w:gz") -> bytes:
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode=mode) as tf:
        for name, data in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            tf.addfile(info, io.BytesIO(data))
    return buf.getvalue()


def tf_targz_bytes() -> bytes:
    """TensorFlow-style tar.gz: payload at the archive root."""
    return tar_bytes({
        "include/tensorflow/c/c_api.h": b"/* c api */\n",
        "lib/libtensorflow.so": b"\x7fELF tf",
        "lib/libtensorflow_framework.so": b"\x7fELF tf fw",
    })


# ── Fake network ────────────────────────────────────────────────────


class FakeResponse:
    """Just enough of http.client.HTTPResponse for the downloader."""

    def __init__(self, body: bytes, status: int = 200, content_length: int | None = None):
        self._buf = io.BytesIO(body)
        self.status = status
        length = len(body) if content_length is None else content_length
        self.headers = {"Content-Length": str(length)}

    def read(self, n: int = -1) -> bytes:
        return self._buf.read(n)

    def getcode(self) -> int:
        return self.status

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


class FakeNetwork:
    """Scripted ``urlopen``.

    Each URL maps to a list of outcomes consumed in order; the last one
    repeats. An outcome is response bytes, an int status code, a
    ``FakeResponse`` factory (callable), or an exception to raise.
    """

    def __init__(self):
        self.routes: dict[str, list] = {}
        self.calls: list[str] = []

    def serve(self, url: str, *outcomes) -> None:
        self.routes[url] = list(outcomes)

    def urlopen(self, req, timeout=None):
        url = req.full_url if isinstance(req, urllib.request.Request) else req
        self.calls.append(url)
        outcomes = self.routes.get(url)
        if not outcomes:
            raise urllib.error.URLError(f"no route to {url}")
        outcome = outcomes.pop(0) if len(outcomes) > 1 else outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        if isinstance(outcome, int):
            return FakeResponse(b"", status=outcome)
        if callable(outcome):
            return outcome()
        return FakeResponse(outcome)
