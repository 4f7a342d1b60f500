import json
import logging
import os

import pytest

from ab_converter import tes3conv as tes3conv_module
from ab_converter.batch_model import ALREADY_CONVERTED, CONVERTED, ERROR, NO_CHANGES
from ab_converter.errors import SetupError
from ab_converter.grid import ConversionDirection
from ab_converter.pipeline import (
    PluginConverter, build_context, collect_input_files, expands_to_batch, split_targets,
)
from ab_converter.scanner import DocumentScanner
from ab_converter.tes3conv import Tes3Conv

from conftest import header, make_context, read_plugin, write_plugin


def solstheim_records(masters=("Morrowind.esm", "Tribunal.esm", "Bloodmoon.esm")):
    return [
        header(masters, description="Solstheim tweaks"),
        {"type": "Landscape", "flags": "", "grid": [10, 4]},
        {"type": "Script", "id": "bm_boat", "text": "AiTravel 83000 33500 0"},
    ]


@pytest.fixture
def converter(fake_tes3conv):
    return PluginConverter(make_context(cells={(10, 4)}), Tes3Conv("tes3conv"))


def leftovers(folder):
    return sorted(name for name in os.listdir(folder) if name.endswith(".json"))


def test_convert_file(tmp_path, converter):
    plugin = write_plugin(tmp_path / "mod.esp", solstheim_records())
    original_bytes = (tmp_path / "mod.esp").read_bytes()

    result = converter.convert_file(plugin)

    assert result.status == CONVERTED
    assert result.updated_scripts == ["bm_boat"]
    assert result.seconds >= 0
    data = read_plugin(plugin)
    assert data[0]["description"] == "[BM->AB] Solstheim tweaks"
    assert data[1]["grid"] == [17, 10]
    assert data[2]["text"] == "AiTravel, 140344.000, 82652.000, 0.000"
    assert (tmp_path / "mod.esp.bak").read_bytes() == original_bytes
    assert leftovers(tmp_path) == []


def test_second_run_is_skipped(tmp_path, converter, fake_tes3conv):
    plugin = write_plugin(tmp_path / "mod.esp", solstheim_records())
    assert converter.convert_file(plugin).status == CONVERTED
    converted_bytes = (tmp_path / "mod.esp").read_bytes()
    fake_tes3conv.clear()

    result = converter.convert_file(plugin)

    assert result.status == ALREADY_CONVERTED
    assert (tmp_path / "mod.esp").read_bytes() == converted_bytes
    # Only decoded, never encoded
    assert len(fake_tes3conv) == 1
    assert leftovers(tmp_path) == []


def test_tag_of_other_direction_also_skips(tmp_path, fake_tes3conv):
    records = solstheim_records()
    records[0]["description"] = "[AB->BM] done before"
    plugin = write_plugin(tmp_path / "mod.esp", records)
    converter = PluginConverter(make_context(cells={(10, 4)}), Tes3Conv("tes3conv"))
    assert converter.convert_file(plugin).status == ALREADY_CONVERTED


def test_no_changes(tmp_path, fake_tes3conv):
    plugin = write_plugin(tmp_path / "mod.esp", solstheim_records())
    before = (tmp_path / "mod.esp").read_bytes()
    converter = PluginConverter(make_context(), Tes3Conv("tes3conv"))

    result = converter.convert_file(plugin)

    assert result.status == NO_CHANGES
    assert (tmp_path / "mod.esp").read_bytes() == before
    assert not (tmp_path / "mod.esp.bak").exists()
    assert leftovers(tmp_path) == []


def test_bad_master_order(tmp_path, converter):
    plugin = write_plugin(tmp_path / "mod.esp",
                          solstheim_records(("Morrowind.esm", "Tribunal.esm")))
    result = converter.convert_file(plugin)
    assert result.status == ERROR
    assert "Parent Masters" in result.message
    assert leftovers(tmp_path) == []


def test_invalid_json_is_an_error(tmp_path, converter):
    (tmp_path / "broken.esp").write_text("{not json", encoding="utf-8")
    result = converter.convert_file(str(tmp_path / "broken.esp"))
    assert result.status == ERROR
    assert leftovers(tmp_path) == []


def test_non_list_document_is_an_error(tmp_path, converter):
    (tmp_path / "odd.esp").write_text('{"type": "Header"}', encoding="utf-8")
    assert converter.convert_file(str(tmp_path / "odd.esp")).status == ERROR


def test_existing_backup_is_kept(tmp_path, converter):
    plugin = write_plugin(tmp_path / "mod.esp", solstheim_records())
    (tmp_path / "mod.esp.bak").write_text("first backup", encoding="utf-8")
    assert converter.convert_file(plugin).status == CONVERTED
    assert (tmp_path / "mod.esp.bak").read_text(encoding="utf-8") == "first backup"


def test_backups_can_be_disabled(tmp_path, fake_tes3conv):
    plugin = write_plugin(tmp_path / "mod.esp", solstheim_records())
    converter = PluginConverter(make_context(cells={(10, 4)}), Tes3Conv("tes3conv"),
                                make_backups=False)
    assert converter.convert_file(plugin).status == CONVERTED
    assert not (tmp_path / "mod.esp.bak").exists()


def test_batch_continues_after_failure(tmp_path, converter, caplog):
    good = write_plugin(tmp_path / "good.esp", solstheim_records())
    missing = str(tmp_path / "missing.esp")

    with caplog.at_level(logging.ERROR):
        report = converter.convert_files([missing, good])

    assert [r.status for r in report.results] == [ERROR, CONVERTED]
    assert report.failed_count == 1
    assert report.converted_count == 1
    assert "missing.esp" in caplog.text


def test_encoder_failure_cleans_up(tmp_path, converter, monkeypatch):
    plugin = write_plugin(tmp_path / "mod.esp", solstheim_records())
    real_run = tes3conv_module.subprocess.run

    def failing_encode(args, **kwargs):
        if args[2].endswith(".esp"):
            return tes3conv_module.subprocess.CompletedProcess(args, 1, stdout="", stderr="boom")
        return real_run(args, **kwargs)

    monkeypatch.setattr(tes3conv_module.subprocess, "run", failing_encode)
    result = converter.convert_file(plugin)
    assert result.status == ERROR
    assert "boom" in result.message
    assert leftovers(tmp_path) == []


def test_temp_json_written_with_unicode(tmp_path, converter, monkeypatch):
    records = solstheim_records()
    records[0]["description"] = "Ærlig Sólstheim"
    plugin = write_plugin(tmp_path / "mod.esp", records)
    seen = {}
    real_run = tes3conv_module.subprocess.run

    def capture(args, **kwargs):
        if os.path.basename(args[1]).startswith("TEMP_"):
            with open(args[1], "r", encoding="utf-8") as f:
                seen["text"] = f.read()
        return real_run(args, **kwargs)

    monkeypatch.setattr(tes3conv_module.subprocess, "run", capture)
    assert converter.convert_file(plugin).status == CONVERTED
    assert "Ærlig Sólstheim" in seen["text"]
    assert json.loads(seen["text"])[0]["description"].startswith("[BM->AB] ")


def test_unexpected_failure_is_local_to_the_file(tmp_path, converter, monkeypatch, caplog):
    records = solstheim_records()
    records.append({"type": "Npc", "id": "bm_shipmaster", "travel_destinations": []})
    bad = write_plugin(tmp_path / "bad.esp", records)
    bad_bytes = (tmp_path / "bad.esp").read_bytes()
    good = write_plugin(tmp_path / "good.esp", solstheim_records())

    def boom(self, npc, state):
        raise TypeError("unreadable travel list")

    monkeypatch.setattr(DocumentScanner, "_process_npc_travel", boom)
    with caplog.at_level(logging.ERROR):
        report = converter.convert_files([bad, good])

    assert [r.status for r in report.results] == [ERROR, CONVERTED]
    assert "unreadable travel list" in report.results[0].message
    assert (tmp_path / "bad.esp").read_bytes() == bad_bytes
    assert "bad.esp" in caplog.text
    assert leftovers(tmp_path) == []


def test_malformed_cell_flags_do_not_stop_the_batch(tmp_path, converter):
    records = solstheim_records()
    records.append({"type": "Cell", "id": "odd", "data": {"flags": 1, "grid": [0, 0]},
                    "references": []})
    odd = write_plugin(tmp_path / "odd.esp", records)
    good = write_plugin(tmp_path / "good.esp", solstheim_records())

    report = converter.convert_files([odd, good])

    assert [r.status for r in report.results] == [CONVERTED, CONVERTED]


def test_unparsable_command_leaves_plugin_untouched(tmp_path, converter):
    records = solstheim_records()
    records[2]["text"] = f"Position {'9' * 400} 33500 0 0"
    plugin = write_plugin(tmp_path / "mod.esp", records)
    before = (tmp_path / "mod.esp").read_bytes()

    result = converter.convert_file(plugin)

    assert result.status == ERROR
    assert "out of range" in result.message
    assert (tmp_path / "mod.esp").read_bytes() == before
    assert not (tmp_path / "mod.esp.bak").exists()
    assert leftovers(tmp_path) == []


def test_huge_cell_against_database_fails_closed(tmp_path, reference_db, overrides_file,
                                                 fake_tes3conv):
    context = build_context(reference_db, overrides_file, ConversionDirection.BM_TO_AB)
    converter = PluginConverter(context, Tes3Conv("tes3conv"))
    huge = write_plugin(tmp_path / "huge.esp", [
        header(), {"type": "Script", "id": "far", "text": f"Position {'9' * 26} 0 0 0"}])
    good = write_plugin(tmp_path / "good.esp", solstheim_records())
    try:
        report = converter.convert_files([huge, good])
    finally:
        context.reference.close()

    assert [r.status for r in report.results] == [NO_CHANGES, CONVERTED]


# ── Setup ─────────────────────────────────────────────────────────────

def test_build_context(reference_db, overrides_file):
    context = build_context(reference_db, overrides_file, ConversionDirection.AB_TO_BM)
    try:
        assert context.offset.x == -7
        assert context.is_valid(17, 10)      # database, shifted probe
        assert context.is_valid(12, -3)      # override, as written
        assert not context.is_valid(10, 4)
    finally:
        context.reference.close()


def test_build_context_without_database(tmp_path, overrides_file):
    with pytest.raises(SetupError):
        build_context(str(tmp_path / "none.db"), overrides_file, ConversionDirection.BM_TO_AB)


# ── Discovery ─────────────────────────────────────────────────────────

def test_split_targets():
    assert split_targets('"a.esp"; b.esm ;;"C:/Data Files/c.esp"') == [
        "a.esp", "b.esm", "C:/Data Files/c.esp"]
    assert split_targets(["x.esp;y.esp", "z.esm"]) == ["x.esp", "y.esp", "z.esm"]


def test_collect_input_files(tmp_path, caplog):
    data = tmp_path / "Data Files"
    (data / "sub").mkdir(parents=True)
    for name in ("b.esp", "A.ESM", "notes.txt", "b.esp.bak"):
        (data / name).write_text("[]")
    (data / "sub" / "c.Esp").write_text("[]")
    single = tmp_path / "single.esp"
    single.write_text("[]")

    targets = [str(data), f"{single};{data / 'b.esp'}", str(tmp_path / "gone.esp")]
    with caplog.at_level(logging.WARNING):
        files = collect_input_files(targets)

    assert files == [
        str(data / "A.ESM"),
        str(data / "b.esp"),
        str(data / "sub" / "c.Esp"),
        str(single),
    ]
    assert "gone.esp" in caplog.text


def test_expands_to_batch(tmp_path):
    (tmp_path / "a.esp").write_text("[]")
    assert not expands_to_batch(str(tmp_path / "a.esp"))
    assert expands_to_batch(f"{tmp_path / 'a.esp'};{tmp_path / 'b.esp'}")
    assert expands_to_batch([str(tmp_path)])
