"""
Tests for domain models and the error taxonomy.
"""

from pathlib import Path

from copperbuild.core.errors import (
    CopperbuildError,
    DependencyConfigError,
    DownloadError,
    UnsupportedPlatformError,
)
from copperbuild.core.models import (
    ArchiveFamily,
    ArchiveJob,
    BackendKind,
    CandidateSource,
    LibraryPrefix,
    LinkDirective,
    LinkPlan,
    Receipt,
    RuntimeImage,
)
from tests.helpers import LINUX


class TestLibraryPrefix:
    def test_layout(self):
        p = LibraryPrefix(kind=BackendKind.LIBTORCH, root=Path("/opt/libtorch"),
                          source=CandidateSource.SYSTEM)
        assert p.lib_dir == Path("/opt/libtorch/lib")
        assert p.include_dir == Path("/opt/libtorch/include")
        assert p.bin_dir == Path("/opt/libtorch/bin")
        assert p.valid

    def test_source_labels_follow_rank(self):
        assert [s.label for s in sorted(CandidateSource)] == [
            "override", "system", "vendor", "managed",
        ]


class TestArchiveJob:
    def test_file_name_strips_query(self):
        job = ArchiveJob(
            kind=BackendKind.TENSORFLOW,
            url="https://host/x/libtensorflow.tar.gz?sig=abc",
            destination=Path("/tmp/a"),
            family=ArchiveFamily.GZIP_TAR,
            platform=LINUX,
        )
        assert job.file_name == "libtensorflow.tar.gz"


class TestLinkPlan:
    def test_add_search_path_dedupes(self):
        plan = LinkPlan()
        plan.add_search_path(Path("/a"))
        plan.add_search_path(Path("/a"))
        assert plan.search_paths == [Path("/a")]

    def test_to_dict(self):
        plan = LinkPlan(directives=[LinkDirective(search_path=Path("/a"), library="torch")])
        d = plan.to_dict()
        assert d["libraries"] == [{"name": "torch", "search_path": "/a", "kind": "dylib"}]


class TestRuntimeImage:
    def test_missing(self):
        image = RuntimeImage(directory=Path("/rt"), present={"a.so": True, "b.so": False})
        assert image.missing == ["b.so"]
        assert image.to_dict()["present"] == {"a.so": True, "b.so": False}


class TestReceipt:
    def test_diagnostic_combines_output_and_error(self):
        r = Receipt.failure(adapter="cmake", action_id="configure", error="exit 1", output="boom")
        assert r.failed
        assert r.diagnostic == "boom\nexit 1"

    def test_success(self):
        r = Receipt.success(adapter="cmake", action_id="build")
        assert r.ok
        assert r.diagnostic == ""


class TestErrors:
    def test_all_derive_from_base(self):
        assert issubclass(DownloadError, CopperbuildError)
        assert issubclass(UnsupportedPlatformError, CopperbuildError)

    def test_download_error_message(self):
        err = DownloadError("https://x/y.zip", 3, "HTTP 404 Not Found")
        assert str(err) == "Download of https://x/y.zip failed after 3 attempt(s): HTTP 404 Not Found"

    def test_unsupported_platform_names_override(self):
        err = UnsupportedPlatformError("TensorFlow", "linux", "arm64", "TENSORFLOW_ROOT")
        assert "linux/arm64" in str(err)
        assert "set TENSORFLOW_ROOT" in str(err)

    def test_dependency_config_error_carries_diagnostic(self):
        err = DependencyConfigError("CMake configuration failed", "Torch_DIR-NOTFOUND\n")
        assert err.diagnostic == "Torch_DIR-NOTFOUND\n"
        assert str(err).endswith("--- configure output ---\nTorch_DIR-NOTFOUND")
