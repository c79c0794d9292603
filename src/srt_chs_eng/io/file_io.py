from __future__ import annotations

import os
import tempfile
from pathlib import Path


OUTPUT_DESCRIPTOR_NAME = "srt_convert_created"


def read_text_exact(path: str | Path) -> str:
    """Read a UTF-8 file byte-exactly: no newline translation, undecodable bytes
    round-trip as surrogates."""
    return Path(path).read_bytes().decode("utf-8", errors="surrogateescape")


def atomic_write_bytes(path: str | Path, data: bytes) -> None:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=target.parent)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp_name, target)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def default_output_descriptor() -> Path:
    override = os.environ.get("SRT_CONVERT_OUTPUT")
    if override:
        return Path(override)
    root = os.environ.get("RUNNER_TEMP") or tempfile.gettempdir()
    return Path(root) / OUTPUT_DESCRIPTOR_NAME


def reset_output_descriptor(path: str | Path) -> None:
    descriptor = Path(path)
    descriptor.parent.mkdir(parents=True, exist_ok=True)
    descriptor.write_text("", encoding="utf-8")


def write_output_descriptor(path: str | Path, eng_path: str, chs_path: str) -> None:
    descriptor = Path(path)
    descriptor.parent.mkdir(parents=True, exist_ok=True)
    with descriptor.open("w", encoding="utf-8") as f:
        f.write(f"eng_path={eng_path}\n")
        f.write(f"chs_path={chs_path}\n")
