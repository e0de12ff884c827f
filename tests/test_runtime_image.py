"""
Tests for runtime directory derivation and population.
"""

from pathlib import Path

from copperbuild.core.services.deps.execution.runtime_image import (
    populate_runtime_image,
    resolve_runtime_dir,
)


class TestResolveRuntimeDir:
    def test_explicit_wins(self, tmp_path: Path):
        env = {"OUT_DIR": "/w/target/release/build/pkg-1/out"}
        assert resolve_runtime_dir(tmp_path / "rt", env, tmp_path) == tmp_path / "rt"

    def test_from_out_dir(self, tmp_path: Path):
        env = {"OUT_DIR": "/w/target/release/build/ai-copper-5e1f/out"}
        assert resolve_runtime_dir(None, env, tmp_path) == Path("/w/target/release")

    def test_fallback_to_target_debug(self, tmp_path: Path):
        assert resolve_runtime_dir(None, {}, tmp_path) == tmp_path / "target" / "debug"


class TestPopulateRuntimeImage:
    def _dir(self, root: Path, *names: str) -> Path:
        root.mkdir(parents=True, exist_ok=True)
        for n in names:
            (root / n).write_bytes(b"x")
        return root

    def test_copies_everything_and_checks(self, tmp_path: Path):
        glue = self._dir(tmp_path / "build", "libai_copper.so")
        lib = self._dir(tmp_path / "torch" / "lib", "libtorch.so", "libc10.so")
        rt = tmp_path / "target" / "debug"

        image = populate_runtime_image(
            rt, [glue, lib], [lib / "libtorch.so"], ["libai_copper.so", "libtorch.so"],
        )

        assert sorted(p.name for p in rt.iterdir()) == ["libai_copper.so", "libc10.so", "libtorch.so"]
        assert image.present == {"libai_copper.so": True, "libtorch.so": True}
        assert image.missing == []
        assert len(image.copied) == 3

    def test_missing_sources_are_not_fatal(self, tmp_path: Path):
        image = populate_runtime_image(
            tmp_path / "rt",
            [tmp_path / "no-such-dir"],
            [tmp_path / "nowhere" / "libtorch.so"],
            ["libtorch.so"],
        )
        assert image.missing == ["libtorch.so"]
        assert image.copied == []

    def test_rerun_overwrites_in_place(self, tmp_path: Path):
        lib = self._dir(tmp_path / "lib", "libtorch.so")
        rt = tmp_path / "rt"
        populate_runtime_image(rt, [lib], [], ["libtorch.so"])
        (lib / "libtorch.so").write_bytes(b"new")
        populate_runtime_image(rt, [lib], [], ["libtorch.so"])
        assert (rt / "libtorch.so").read_bytes() == b"new"
