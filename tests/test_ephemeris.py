from __future__ import annotations

from pathlib import Path
from typing import List

import httpx
import pytest

import moontide.ephemeris as ephemeris
from moontide.ephemeris import (
    DEFAULT_EPHEMERIS_FILENAME,
    EphemerisAcquisitionError,
    download_kernel,
    resolve_ephemeris_source,
)


@pytest.fixture
def downloads(monkeypatch: pytest.MonkeyPatch) -> List[Path]:
    requested: List[Path] = []

    def fake_download(destination: Path, url: str = ephemeris.DEFAULT_EPHEMERIS_URL) -> Path:
        requested.append(destination)
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_bytes(b"kernel")
        return destination

    monkeypatch.setattr(ephemeris, "download_kernel", fake_download)
    return requested


def test_override_file_is_used_as_is(monkeypatch, tmp_path: Path, downloads):
    kernel = tmp_path / "local.bsp"
    kernel.write_bytes(b"kernel")
    monkeypatch.setenv("DE_BSP", str(kernel))
    assert resolve_ephemeris_source() == kernel
    assert downloads == []


def test_override_directory_with_kernel(monkeypatch, tmp_path: Path, downloads):
    (tmp_path / "de440.bsp").write_bytes(b"kernel")
    monkeypatch.setenv("DE_BSP", str(tmp_path))
    assert resolve_ephemeris_source() == tmp_path
    assert downloads == []


def test_override_rejects_non_kernel_file(monkeypatch, tmp_path: Path, downloads):
    bogus = tmp_path / "notes.txt"
    bogus.write_text("not a kernel")
    monkeypatch.setenv("DE_BSP", str(bogus))
    with pytest.raises(EphemerisAcquisitionError):
        resolve_ephemeris_source()


def test_empty_directory_triggers_download(monkeypatch, tmp_path: Path, downloads):
    monkeypatch.setenv("DE_BSP", str(tmp_path))
    assert resolve_ephemeris_source() == tmp_path
    assert downloads == [tmp_path / DEFAULT_EPHEMERIS_FILENAME]


def test_cache_dir_default(monkeypatch, tmp_path: Path, downloads):
    monkeypatch.delenv("DE_BSP", raising=False)
    monkeypatch.setenv("DE_BSP_CACHE_DIR", str(tmp_path / "cache"))
    expected = tmp_path / "cache" / DEFAULT_EPHEMERIS_FILENAME
    assert resolve_ephemeris_source() == expected
    assert downloads == [expected]


def test_failed_download_removes_partial_file(monkeypatch, tmp_path: Path):
    def failing_stream(*args, **kwargs):
        raise httpx.ConnectError("unreachable")

    monkeypatch.setattr(httpx, "stream", failing_stream)
    destination = tmp_path / "kernels" / DEFAULT_EPHEMERIS_FILENAME
    with pytest.raises(EphemerisAcquisitionError):
        download_kernel(destination)
    assert not destination.exists()
