"""Locate or download the JPL kernel used to regenerate the lunar table."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

import httpx

LOGGER = logging.getLogger(__name__)

DEFAULT_EPHEMERIS_URL = (
    "https://naif.jpl.nasa.gov/pub/naif/generic_kernels/spk/planets/de442.bsp"
)
DEFAULT_EPHEMERIS_FILENAME = "de442.bsp"
DEFAULT_CACHE_DIR = Path.home() / ".moontide" / "kernels"


class EphemerisAcquisitionError(RuntimeError):
    """Raised when no usable kernel can be found or downloaded."""


def download_kernel(destination: Path, url: str = DEFAULT_EPHEMERIS_URL) -> Path:
    """Stream *url* into *destination*, removing partial files on failure."""

    destination.parent.mkdir(parents=True, exist_ok=True)
    LOGGER.info(
        json.dumps(
            {"event": "ephemeris_downloading", "url": url, "destination": str(destination)}
        )
    )
    received = 0
    try:
        with httpx.stream("GET", url, timeout=httpx.Timeout(120.0, connect=30.0)) as response:
            response.raise_for_status()
            with destination.open("wb") as handle:
                for chunk in response.iter_bytes(chunk_size=1 << 20):
                    handle.write(chunk)
                    received += len(chunk)
    except (httpx.HTTPError, OSError) as exc:
        if destination.exists():
            destination.unlink()
        raise EphemerisAcquisitionError(f"Failed to download ephemeris from {url}: {exc}") from exc

    LOGGER.info(
        json.dumps(
            {"event": "ephemeris_downloaded", "destination": str(destination), "bytes": received}
        )
    )
    return destination


def _ensure_kernel(path: Path) -> Path:
    """Return *path* when it holds a kernel, downloading the default one otherwise."""

    if path.is_file():
        if path.suffix.lower() != ".bsp":
            raise EphemerisAcquisitionError(f"Ephemeris file must have .bsp extension: {path}")
        return path
    if path.is_dir():
        if any(path.glob("*.bsp")):
            return path
        download_kernel(path / DEFAULT_EPHEMERIS_FILENAME)
        return path
    if path.exists():
        raise EphemerisAcquisitionError(f"Ephemeris path is not a file or directory: {path}")

    if path.suffix.lower() == ".bsp":
        return download_kernel(path)
    download_kernel(path / DEFAULT_EPHEMERIS_FILENAME)
    return path


def resolve_ephemeris_source() -> Path:
    """Resolve the kernel location from ``DE_BSP`` or ``DE_BSP_CACHE_DIR``."""

    override = os.environ.get("DE_BSP")
    if override:
        return _ensure_kernel(Path(override).expanduser())

    cache_root = Path(os.environ.get("DE_BSP_CACHE_DIR", str(DEFAULT_CACHE_DIR))).expanduser()
    return _ensure_kernel(cache_root / DEFAULT_EPHEMERIS_FILENAME)
