import subprocess

import pytest

from ab_converter import tes3conv as tes3conv_module
from ab_converter.errors import SetupError, Tes3ConvError
from ab_converter.tes3conv import Tes3Conv, default_executable


def test_default_executable(monkeypatch):
    monkeypatch.setattr(tes3conv_module.sys, "platform", "win32")
    assert default_executable() == "tes3conv.exe"
    monkeypatch.setattr(tes3conv_module.sys, "platform", "linux")
    assert default_executable() == "./tes3conv"


def test_check_available(tmp_path):
    exe = tmp_path / "tes3conv"
    with pytest.raises(SetupError):
        Tes3Conv(str(exe)).check_available()
    exe.write_text("")
    Tes3Conv(str(exe)).check_available()


def test_round_trip_arguments(tmp_path, fake_tes3conv):
    plugin = tmp_path / "mod.esp"
    plugin.write_text("[]", encoding="utf-8")
    conv = Tes3Conv("tes3conv")
    conv.to_json(str(plugin), str(tmp_path / "mod.json"))
    conv.to_plugin(str(tmp_path / "mod.json"), str(tmp_path / "out.esp"))
    assert fake_tes3conv == [
        ["tes3conv", str(plugin), str(tmp_path / "mod.json")],
        ["tes3conv", str(tmp_path / "mod.json"), str(tmp_path / "out.esp")],
    ]
    assert (tmp_path / "out.esp").read_text(encoding="utf-8") == "[]"


def test_non_zero_exit(monkeypatch):
    def fake_run(args, **kwargs):
        return subprocess.CompletedProcess(args, 3, stdout="", stderr="bad record\n")

    monkeypatch.setattr(tes3conv_module.subprocess, "run", fake_run)
    with pytest.raises(Tes3ConvError, match="exit code 3.*bad record"):
        Tes3Conv("tes3conv").to_json("a.esp", "a.json")


@pytest.mark.parametrize("error", [
    subprocess.TimeoutExpired("tes3conv", 1),
    FileNotFoundError("tes3conv"),
    PermissionError("denied"),
])
def test_process_failures(monkeypatch, error):
    def fake_run(args, **kwargs):
        raise error

    monkeypatch.setattr(tes3conv_module.subprocess, "run", fake_run)
    with pytest.raises(Tes3ConvError):
        Tes3Conv("tes3conv", timeout=1).to_plugin("a.json", "a.esp")
