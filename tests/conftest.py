import json
import shutil
import sqlite3
import subprocess

import pytest

from ab_converter import tes3conv as tes3conv_module
from ab_converter.errors import RegionLookupError
from ab_converter.grid import ConversionDirection
from ab_converter.regions import REFERENCE_TABLE, CellLookup, CustomCoordinates
from ab_converter.scanner import TranslationContext


class StaticRegion(CellLookup):
    """In-memory reference region."""

    def __init__(self, cells=()):
        self.cells = set(cells)
        self.probes = []

    def contains(self, grid_x, grid_y):
        self.probes.append((grid_x, grid_y))
        return (grid_x, grid_y) in self.cells

    def close(self):
        pass


class BrokenRegion(CellLookup):
    """Reference region whose backend always fails."""

    def contains(self, grid_x, grid_y):
        raise RegionLookupError("no such table")


def make_context(direction=ConversionDirection.BM_TO_AB, cells=(), overrides=()):
    return TranslationContext(StaticRegion(cells), CustomCoordinates(overrides), direction)


@pytest.fixture
def reference_db(tmp_path):
    """SQLite reference database holding Bloodmoon-space cells (10, 4) and (-2, 18)."""
    path = tmp_path / "cells.db"
    conn = sqlite3.connect(path)
    conn.execute(f"CREATE TABLE [{REFERENCE_TABLE}] (BM_Grid_X INTEGER, BM_Grid_Y INTEGER)")
    conn.executemany(f"INSERT INTO [{REFERENCE_TABLE}] VALUES (?, ?)", [(10, 4), (-2, 18)])
    conn.commit()
    conn.close()
    return str(path)


@pytest.fixture
def overrides_file(tmp_path):
    path = tmp_path / "custom.txt"
    path.write_text("// custom cells\n\n12,-3\n 5 , 6 \n12;3\nfoo\n", encoding="utf-8")
    return str(path)


@pytest.fixture
def fake_tes3conv(monkeypatch):
    """Replace the tes3conv process with a file copy.

    Test "plugins" are JSON files, so decoding and encoding are both copies.
    Returns the list of argument vectors the adapter ran.
    """
    calls = []

    def fake_run(args, **kwargs):
        calls.append(list(args))
        _, source, destination = args
        shutil.copyfile(source, destination)
        return subprocess.CompletedProcess(args, 0, stdout="", stderr="")

    monkeypatch.setattr(tes3conv_module.subprocess, "run", fake_run)
    return calls


def header(masters=("Morrowind.esm", "Bloodmoon.esm"), description="A mod"):
    return {
        "type": "Header",
        "flags": "",
        "version": 1.3,
        "file_type": "Esp",
        "author": "someone",
        "description": description,
        "num_objects": 0,
        "masters": [[name, 1000] for name in masters],
    }


def write_plugin(path, records):
    path.write_text(json.dumps(records, indent=2), encoding="utf-8")
    return str(path)


def read_plugin(path):
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)
