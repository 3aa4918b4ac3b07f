"""Shared fixtures for scatters tests."""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import numpy as np
import pytest
import soundfile as sf
from openpyxl import Workbook

from scatters.config import Settings


@pytest.fixture
def write_file(tmp_path: Path) -> Callable[[str, str], Path]:
    """Write text content to a file under tmp_path and return its path."""

    def _write(name: str, content: str) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def make_settings(tmp_path: Path) -> Callable[..., Settings]:
    """Settings pointed at tmp_path unless overridden."""

    def _make(**overrides) -> Settings:
        overrides.setdefault("input_path", tmp_path)
        return Settings(**overrides)

    return _make


@pytest.fixture
def excel_with_preamble(tmp_path: Path) -> Path:
    """Workbook whose header sits below two empty rows and has one blank header cell."""

    wb = Workbook()
    ws = wb.active
    ws.title = "Sheet1"
    ws.cell(row=3, column=1, value="date")
    ws.cell(row=3, column=2, value="sales")
    ws.cell(row=3, column=4, value="cost")
    rows = [
        ("2024-01-01", 100, "x", 10.5),
        ("2024-01-02", 200, "y", 20.5),
        ("2024-01-03", 300, "z", 30.5),
    ]
    for offset, row in enumerate(rows):
        for col, value in enumerate(row, start=1):
            ws.cell(row=4 + offset, column=col, value=value)
    path = tmp_path / "sales.xlsx"
    wb.save(path)
    return path


@pytest.fixture
def stereo_wav(tmp_path: Path) -> Path:
    """Short two-channel WAV file."""

    t = np.linspace(0, 1, 64, endpoint=False)
    data = np.column_stack([np.sin(2 * np.pi * 4 * t), 0.5 * np.cos(2 * np.pi * 4 * t)]).astype("float32")
    path = tmp_path / "tone.wav"
    sf.write(str(path), data, 8000, subtype="FLOAT")
    return path
