"""
Tests for the resolution chain — rank order, fallthrough, acquisition.
"""

import logging
from pathlib import Path

import pytest

from copperbuild.core.errors import (
    ArchiveFormatError,
    DownloadError,
    InstallError,
    UnsupportedPlatformError,
)
from copperbuild.core.models.backend import (
    BackendKind,
    CandidateSource,
    PrefixStatus,
)
from copperbuild.core.models.config import BackendSettings, BuildConfig
from copperbuild.core.services.deps.resolver.resolution_chain import ResolutionChain
from tests.helpers import LINUX, LINUX_ARM, TF_URL, TORCH_URL, tf_targz_bytes, torch_zip_bytes

TORCH = BackendKind.LIBTORCH
TF = BackendKind.TENSORFLOW


class ScriptedValidator:
    """Returns a fixed status per candidate path and counts calls."""

    def __init__(self, statuses: dict[Path | None, PrefixStatus]):
        self.statuses = statuses
        self.calls: list[Path | None] = []

    def __call__(self, path, kind, host):
        self.calls.append(path)
        return self.statuses.get(path, PrefixStatus.ABSENT)


def _chain(config: BuildConfig, environ=None, **kwargs) -> ResolutionChain:
    kwargs.setdefault("host", LINUX)
    kwargs.setdefault("configurer", lambda prefix: {"ok": True})
    return ResolutionChain(config, environ=environ if environ is not None else {}, **kwargs)


# ── Candidate ordering ───────────────────────────────────────────────


class TestCandidates:
    def test_rank_order_and_paths(self, config: BuildConfig, tmp_path: Path):
        chain = _chain(config, {"LIBTORCH": "/env/libtorch"})
        cands = chain.candidates(TORCH)

        assert [c.source for c in cands] == list(CandidateSource)
        assert cands[0].path == Path("/env/libtorch")
        assert cands[1].path == tmp_path / "system" / "libtorch"
        assert cands[2].path == config.project_root / "third_party" / "libtorch"
        assert cands[3].path == tmp_path / "managed" / "linux-x86_64" / "libtorch"

    def test_unset_override_is_none(self, config: BuildConfig):
        assert _chain(config).candidates(TF)[0].path is None

    def test_config_override_used_when_env_unset(self, config: BuildConfig):
        config.backends[TF] = BackendSettings(override="/cfg/tf")
        assert _chain(config).override_path(TF) == Path("/cfg/tf")

    def test_env_wins_over_config_override(self, config: BuildConfig):
        config.backends[TF] = BackendSettings(override="/cfg/tf")
        chain = _chain(config, {"TENSORFLOW_ROOT": "/env/tf"})
        assert chain.override_path(TF) == Path("/env/tf")

    def test_builtin_system_path(self, project: Path):
        chain = _chain(BuildConfig(project_root=project))
        assert chain.system_path(TORCH) == Path("/opt/libtorch")


# ── Rank short-circuit ───────────────────────────────────────────────


class TestResolveOrder:
    def test_valid_override_stops_evaluation(self, config: BuildConfig):
        validator = ScriptedValidator({Path("/env/libtorch"): PrefixStatus.VALID})
        chain = _chain(config, {"LIBTORCH": "/env/libtorch"}, validator=validator)

        prefix = chain.resolve(TORCH)

        assert prefix.source is CandidateSource.OVERRIDE
        assert validator.calls == [Path("/env/libtorch")]

    def test_rank_n_valid_means_rank_n_plus_1_never_probed(self, config: BuildConfig):
        chain = _chain(config)
        vendor = chain.vendor_path(TORCH)
        validator = ScriptedValidator({vendor: PrefixStatus.VALID})
        chain = _chain(config, validator=validator)

        prefix = chain.resolve(TORCH)

        assert prefix.source is CandidateSource.VENDOR
        assert prefix.root == vendor
        assert len(validator.calls) == 3
        assert chain.managed_target(TORCH) not in validator.calls

    def test_override_is_not_reconfigured(self, config: BuildConfig):
        configured = []
        validator = ScriptedValidator({Path("/env/tf"): PrefixStatus.VALID})
        chain = _chain(
            config, {"TENSORFLOW_ROOT": "/env/tf"},
            validator=validator, configurer=configured.append,
        )
        chain.resolve(TF)
        assert configured == []

    def test_lower_ranks_are_configured(self, config: BuildConfig):
        configured = []
        system = Path(config.backend(TF).system_path)
        chain = _chain(
            config,
            validator=ScriptedValidator({system: PrefixStatus.VALID}),
            configurer=configured.append,
        )
        prefix = chain.resolve(TF)
        assert configured == [prefix]
        assert prefix.source is CandidateSource.SYSTEM


# ── Fallthrough ──────────────────────────────────────────────────────


class TestFallthrough:
    def test_invalid_override_falls_through_with_warning(
        self, config: BuildConfig, make_prefix, tmp_path: Path, caplog,
    ):
        broken = make_prefix(TF, tmp_path / "broken-tf", complete=False)
        vendor = make_prefix(TF, config.project_root / "third_party" / "libtensorflow")
        chain = _chain(config, {"TENSORFLOW_ROOT": str(broken)})

        with caplog.at_level(logging.INFO):
            prefix = chain.resolve(TF)

        assert prefix.root == vendor
        assert prefix.source is CandidateSource.VENDOR
        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert any("TENSORFLOW_ROOT" in r.getMessage() for r in warnings)

    def test_nonexistent_override_is_warned(self, config: BuildConfig, make_prefix, caplog):
        make_prefix(TORCH, config.project_root / "third_party" / "libtorch")
        chain = _chain(config, {"LIBTORCH": "/definitely/not/here"})

        chain.resolve(TORCH)

        assert any(
            r.levelno == logging.WARNING and "does not exist" in r.getMessage()
            for r in caplog.records
        )

    def test_incomplete_system_install_logged_distinctly(
        self, config: BuildConfig, make_prefix, caplog,
    ):
        make_prefix(TORCH, Path(config.backend(TORCH).system_path), complete=False)
        make_prefix(TORCH, config.project_root / "third_party" / "libtorch")

        _chain(config).resolve(TORCH)

        assert "exists but is incomplete" in caplog.text

    def test_real_validator_uses_existing_managed_install(
        self, config: BuildConfig, make_prefix, network,
    ):
        chain = _chain(config)
        make_prefix(TORCH, chain.managed_target(TORCH))

        prefix = chain.resolve(TORCH)

        assert prefix.source is CandidateSource.MANAGED
        assert network.calls == []


# ── Acquisition ──────────────────────────────────────────────────────


class TestAcquire:
    def test_downloads_when_nothing_local(self, config: BuildConfig, network, sleeps):
        network.serve(TORCH_URL, torch_zip_bytes())
        env: dict[str, str] = {}
        chain = ResolutionChain(config, host=LINUX, environ=env, sleep=sleeps.append)

        prefix = chain.resolve(TORCH)

        target = chain.managed_target(TORCH)
        assert prefix.source is CandidateSource.MANAGED
        assert prefix.root == target
        assert (target / "lib" / "libtorch.so").is_file()
        assert env["LIBTORCH"] == str(target)
        assert network.calls == [TORCH_URL]
        # the archive and the staging directory are cleaned up
        assert not (chain.managed_root / "downloads" / "libtorch-cpu.zip").exists()
        assert sorted(p.name for p in target.parent.iterdir()) == ["libtorch"]

    def test_tar_gz_acquisition(self, config: BuildConfig, network):
        network.serve(TF_URL, tf_targz_bytes())
        prefix = _chain(config).resolve(TF)
        assert (prefix.root / "include/tensorflow/c/c_api.h").is_file()

    def test_unsupported_platform_never_downloads(self, config: BuildConfig, network):
        chain = _chain(config, host=LINUX_ARM)

        with pytest.raises(UnsupportedPlatformError) as exc_info:
            chain.resolve(TF)

        assert network.calls == []
        assert "TENSORFLOW_ROOT" in str(exc_info.value)
        assert "linux/arm64" in str(exc_info.value)

    def test_builtin_table_has_no_linux_arm_builds(self, project: Path):
        chain = _chain(BuildConfig(project_root=project), host=LINUX_ARM)
        assert not chain.supports_acquisition(TF)
        assert not chain.supports_acquisition(TORCH)

    def test_html_error_page_is_not_retried(self, config: BuildConfig, network, sleeps):
        network.serve(TORCH_URL, b"<html>Access Denied</html>")
        chain = _chain(config, sleep=sleeps.append)

        with pytest.raises(ArchiveFormatError):
            chain.resolve(TORCH)

        assert network.calls == [TORCH_URL]
        assert not chain.managed_target(TORCH).exists()

    def test_download_failure_is_fatal(self, config: BuildConfig, network, sleeps):
        chain = _chain(config, sleep=sleeps.append)
        with pytest.raises(DownloadError):
            chain.resolve(TORCH)
        assert len(network.calls) == 3

    def test_archive_without_expected_files(self, config: BuildConfig, network):
        from tests.helpers import tar_bytes

        network.serve(TF_URL, tar_bytes({"README": b"nothing here"}))
        with pytest.raises(InstallError, match="invalid"):
            _chain(config).resolve(TF)

    def test_force_download_skips_local_ranks(
        self, config: BuildConfig, make_prefix, network,
    ):
        make_prefix(TORCH, config.project_root / "third_party" / "libtorch")
        network.serve(TORCH_URL, torch_zip_bytes())
        chain = _chain(config)

        assert chain.resolve(TORCH).source is CandidateSource.VENDOR
        forced = chain.resolve(TORCH, force_download=True)

        assert forced.source is CandidateSource.MANAGED
        assert network.calls == [TORCH_URL]

    def test_force_download_replaces_managed_install(
        self, config: BuildConfig, make_prefix, network,
    ):
        chain = _chain(config)
        stale = make_prefix(TORCH, chain.managed_target(TORCH), extra_libs=("libstale.so",))
        network.serve(TORCH_URL, torch_zip_bytes())

        chain.resolve(TORCH, force_download=True)

        assert not (stale / "lib" / "libstale.so").exists()
        assert (stale / "lib" / "libc10.so").is_file()


class TestResolveAll:
    def test_both_backends_in_order(self, config: BuildConfig, make_prefix):
        make_prefix(TORCH, config.project_root / "third_party" / "libtorch")
        make_prefix(TF, config.project_root / "third_party" / "libtensorflow")

        prefixes = _chain(config).resolve_all()

        assert list(prefixes) == [TORCH, TF]
        assert all(p.source is CandidateSource.VENDOR for p in prefixes.values())
