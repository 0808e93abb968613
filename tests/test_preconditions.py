import logging

import pytest

from wizardshell import preconditions
from wizardshell.preconditions import (
    PRECONDITIONS,
    Precondition,
    cpu_flags,
    first_failure,
    gpu_present,
    resolve_preconditions,
    virtualization_supported,
)
from wizardshell.resources import ExitCode


class TestChecks:
    def test_gpu_present_with_card_entry(self, tmp_path):
        (tmp_path / "card0").mkdir()
        (tmp_path / "card0-HDMI-A-1").mkdir()
        assert gpu_present(str(tmp_path))

    def test_connectors_alone_do_not_count(self, tmp_path):
        (tmp_path / "card0-HDMI-A-1").mkdir()
        (tmp_path / "renderD128").mkdir()
        assert not gpu_present(str(tmp_path))

    def test_missing_drm_directory(self, tmp_path):
        assert not gpu_present(str(tmp_path / "nope"))

    def test_cpu_flags_from_first_processor(self, tmp_path):
        cpuinfo = tmp_path / "cpuinfo"
        cpuinfo.write_text(
            "processor\t: 0\nmodel name\t: Test CPU\nflags\t\t: fpu vmx sse\n\n"
            "processor\t: 1\nflags\t\t: fpu\n"
        )
        assert cpu_flags(str(cpuinfo)) == ["fpu", "vmx", "sse"]

    def test_cpu_flags_without_cpuinfo(self, tmp_path):
        assert cpu_flags(str(tmp_path / "missing")) == []

    @pytest.mark.parametrize(
        "flags, supported",
        [(["fpu", "vmx"], True), (["svm"], True), (["fpu", "sse"], False), ([], False)],
    )
    def test_virtualization_supported(self, monkeypatch, flags, supported):
        monkeypatch.setattr(preconditions, "cpu_flags", lambda: flags)
        assert virtualization_supported() is supported


class TestResolution:
    def test_resolve_known_names(self):
        checks = resolve_preconditions(["system", "gpu"])
        assert [c.name for c in checks] == ["system", "gpu"]
        assert checks[1].exit_code == ExitCode.GPU_NOT_EXIST

    def test_unknown_name_raises(self):
        with pytest.raises(ValueError, match="teleporter"):
            resolve_preconditions(["teleporter"])

    def test_every_precondition_has_its_own_exit_code(self):
        codes = [p.exit_code for p in PRECONDITIONS.values()]
        assert len(set(codes)) == len(codes)
        assert ExitCode.SUCCESS not in codes


class TestFirstFailure:
    def test_all_pass(self):
        assert first_failure([Precondition("ok", lambda: True, ExitCode.GPU_NOT_EXIST, "")]) is None

    def test_stops_at_first_failure(self, caplog):
        ran = []

        def check(name, result):
            def run():
                ran.append(name)
                return result
            return run

        checks = [
            Precondition("a", check("a", True), ExitCode.GPU_NOT_EXIST, "a failed"),
            Precondition("b", check("b", False), ExitCode.SYSTEM_NOT_SUPPORTED, "b failed"),
            Precondition("c", check("c", False), ExitCode.VIRTUALIZATION_MISSING, "c failed"),
        ]
        with caplog.at_level(logging.WARNING, logger="wizardshell.preconditions"):
            failed = first_failure(checks)

        assert failed.name == "b"
        assert ran == ["a", "b"]
        assert "b failed" in caplog.text
