from __future__ import annotations

from dataclasses import dataclass
from itertools import groupby
from typing import Iterable, List


BOM = "\ufeff"


@dataclass
class SrtEntry:
    index: int
    start_ts: str
    end_ts: str
    lines: List[str]


@dataclass(frozen=True)
class SrtLayout:
    """Byte-level framing of a subtitle file, kept so rewrites match the source."""

    newline: str = "\n"
    bom: bool = False


def detect_layout(text: str) -> SrtLayout:
    return SrtLayout(newline="\r\n" if "\r\n" in text else "\n", bom=text.startswith(BOM))


def _parse_block(block: List[str]) -> SrtEntry:
    index_line = block[0].strip()
    try:
        index = int(index_line)
    except ValueError as exc:
        raise ValueError(f"Invalid SRT index line: {index_line}") from exc
    if len(block) < 2:
        raise ValueError(f"SRT record {index} has no timing line")
    start_ts, sep, end_ts = block[1].partition("-->")
    if not sep:
        raise ValueError(f"Invalid SRT timing line: {block[1].strip()}")
    return SrtEntry(index=index, start_ts=start_ts.strip(), end_ts=end_ts.strip(), lines=block[2:])


def parse_srt(text: str) -> List[SrtEntry]:
    # records are runs of non-blank lines
    lines = text.removeprefix(BOM).splitlines()
    return [
        _parse_block(list(block))
        for has_text, block in groupby(lines, key=lambda line: bool(line.strip()))
        if has_text
    ]


def render_srt(entries: Iterable[SrtEntry], layout: SrtLayout | None = None) -> str:
    if layout is None:
        layout = SrtLayout()
    blocks = [
        layout.newline.join(
            [str(entry.index), f"{entry.start_ts} --> {entry.end_ts}", *entry.lines]
        )
        for entry in entries
    ]
    if not blocks:
        return ""
    body = (layout.newline * 2).join(blocks) + layout.newline
    return BOM + body if layout.bom else body
