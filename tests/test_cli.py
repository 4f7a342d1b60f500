import json

import pytest

import main
from ab_converter.grid import ConversionDirection
from ab_converter.settings import ConverterSettings

from conftest import header, read_plugin, write_plugin


@pytest.fixture
def settings(tmp_path, reference_db, overrides_file):
    exe = tmp_path / "tes3conv"
    exe.write_text("")
    return ConverterSettings(tes3conv_path=str(exe), database_path=reference_db,
                             custom_coordinates_path=overrides_file,
                             log_file=str(tmp_path / "tes3_ab.log"))


def plugin_records():
    return [header(), {"type": "Landscape", "flags": "", "grid": [10, 4]}]


def test_parse_args():
    args = main.parse_args(["-2", "-b", "-s", "a.esp;b.esp", "Data Files"])
    assert args.direction is ConversionDirection.AB_TO_BM
    assert args.batch and args.silent
    assert args.targets == ["a.esp;b.esp", "Data Files"]

    args = main.parse_args([])
    assert args.direction is None
    assert args.targets == []


def test_directions_are_exclusive():
    with pytest.raises(SystemExit):
        main.parse_args(["-1", "-2", "a.esp"])


def test_batch_flag_required_for_several_files(tmp_path, settings, fake_tes3conv):
    first = write_plugin(tmp_path / "a.esp", plugin_records())
    second = write_plugin(tmp_path / "b.esp", plugin_records())
    args = main.parse_args(["-1", f"{first};{second}"])
    assert main.run_headless(args, settings) == main.EXIT_USAGE
    assert fake_tes3conv == []


def test_no_inputs(tmp_path, settings):
    args = main.parse_args(["-1", str(tmp_path / "missing.esp")])
    assert main.run_headless(args, settings) == main.EXIT_USAGE


def test_missing_database(tmp_path, settings, fake_tes3conv):
    plugin = write_plugin(tmp_path / "a.esp", plugin_records())
    settings.database_path = str(tmp_path / "none.db")
    args = main.parse_args(["-1", plugin])
    assert main.run_headless(args, settings) == main.EXIT_USAGE
    assert fake_tes3conv == []


def test_batch_run_with_report(tmp_path, settings, fake_tes3conv):
    data = tmp_path / "Data Files"
    data.mkdir()
    good = write_plugin(data / "good.esp", plugin_records())
    write_plugin(data / "idle.esp", [header(), {"type": "Landscape", "grid": [0, 0]}])
    report_path = tmp_path / "report.json"

    args = main.parse_args(["-1", "-b", "--no-backup", "--report", str(report_path), str(data)])
    assert main.run_headless(args, settings) == main.EXIT_OK

    assert read_plugin(good)[1]["grid"] == [17, 10]
    assert not (data / "good.esp.bak").exists()
    report = json.loads(report_path.read_text(encoding="utf-8"))
    assert [r["status"] for r in report["results"]] == ["converted", "no_changes"]


def test_failed_file_sets_exit_code(tmp_path, settings, fake_tes3conv):
    bad = write_plugin(tmp_path / "bad.esp", [header(("Tribunal.esm",))])
    args = main.parse_args(["-1", bad])
    assert main.run_headless(args, settings) == main.EXIT_FAILED
