from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Protocol, Sequence

from srt_chs_eng.errors import MissingTransformError
from srt_chs_eng.io.subprocess_run import run_filter
from srt_chs_eng.pipeline.srt import SrtEntry, detect_layout, parse_srt, render_srt


STAGE_MERGE = "merge-bilingual"
STAGE_EXTRACT = "extract-primary-language"
STAGE_WRAP = "wrap-lines"

AWK_SCRIPT_DIR = Path("scripts") / "awk"
AWK_SWAP_SCRIPT = "srt_zh_en_swap.awk"
AWK_ZH_ONLY_SCRIPT = "srt_zh_only.awk"
AWK_WRAP_SCRIPT = "srt_zh_wrap.awk"

_CJK_RE = re.compile(r"[\u3400-\u4DBF\u4E00-\u9FFF\uF900-\uFAFF]")
_OPEN_BRACKETS = "(（[【"
_CLOSE_BRACKETS = ")）]】"
_BREAK_AFTER = "，。！？、；：,.!?;:"


class TransformStages(Protocol):
    """The three subtitle transforms the pipeline is built from."""

    def merge_bilingual(self, content: str) -> str: ...

    def extract_primary_language(self, content: str) -> str: ...

    def wrap_lines(self, content: str, split_threshold: int, bracket_factor: float) -> str: ...


def format_factor(value: float) -> str:
    return f"{value:g}"


@dataclass
class AwkTransformStages:
    """Runs the srt-tools AWK scripts, piping content through ``awk -f``."""

    swap_script: Path
    zh_only_script: Path
    wrap_script: Path
    timeout: float | None = 300.0

    @classmethod
    def from_tools(cls, tools_path: str | Path) -> "AwkTransformStages":
        script_dir = Path(tools_path) / AWK_SCRIPT_DIR
        scripts = [script_dir / name for name in (AWK_SWAP_SCRIPT, AWK_ZH_ONLY_SCRIPT, AWK_WRAP_SCRIPT)]
        for script in scripts:
            if not script.is_file():
                raise MissingTransformError(f"Missing AWK script: {script}")
        return cls(*scripts)

    def _awk(self, args: Sequence[str], content: str) -> str:
        data = content.encode("utf-8", errors="surrogateescape")
        output = run_filter(["awk", *args], data, timeout=self.timeout)
        return output.decode("utf-8", errors="surrogateescape")

    def merge_bilingual(self, content: str) -> str:
        return self._awk(["-f", str(self.swap_script)], content)

    def extract_primary_language(self, content: str) -> str:
        return self._awk(["-f", str(self.zh_only_script)], content)

    def wrap_lines(self, content: str, split_threshold: int, bracket_factor: float) -> str:
        return self._awk(
            [
                "-v",
                f"SPLIT_THRESHOLD={split_threshold}",
                "-v",
                f"BRACKET_FACTOR={format_factor(bracket_factor)}",
                "-f",
                str(self.wrap_script),
            ],
            content,
        )


def is_chinese_line(line: str) -> bool:
    return _CJK_RE.search(line) is not None


def weighted_lengths(text: str, bracket_factor: float) -> List[float]:
    """Per-character display weight; bracketed text counts ``bracket_factor``."""
    weights: List[float] = []
    depth = 0
    for ch in text:
        if ch in _OPEN_BRACKETS:
            depth += 1
            weights.append(bracket_factor)
        elif ch in _CLOSE_BRACKETS:
            weights.append(bracket_factor if depth > 0 else 1.0)
            depth = max(depth - 1, 0)
        else:
            weights.append(bracket_factor if depth > 0 else 1.0)
    return weights


def _choose_wrap_point(text: str, weights: Sequence[float]) -> int:
    total = sum(weights)
    target = total / 2
    cumulative: List[float] = []
    running = 0.0
    for weight in weights[:-1]:
        running += weight
        cumulative.append(running)
    # cumulative[i - 1] is the weight left of split position i
    midpoint = min(
        range(1, len(text)),
        key=lambda pos: (abs(cumulative[pos - 1] - target), pos),
    )
    window = total / 4
    candidates = [
        pos
        for pos in range(1, len(text))
        if (text[pos - 1] in _BREAK_AFTER or text[pos] == " " or text[pos] in _OPEN_BRACKETS)
        and abs(cumulative[pos - 1] - target) <= window
    ]
    if not candidates:
        return midpoint
    return min(candidates, key=lambda pos: (abs(cumulative[pos - 1] - target), pos))


def wrap_line(text: str, split_threshold: int, bracket_factor: float) -> List[str]:
    weights = weighted_lengths(text, bracket_factor)
    if len(text) < 2 or sum(weights) <= split_threshold:
        return [text]
    split_at = _choose_wrap_point(text, weights)
    left = text[:split_at].rstrip()
    right = text[split_at:].lstrip()
    if not left or not right:
        return [text]
    return wrap_line(left, split_threshold, bracket_factor) + wrap_line(
        right, split_threshold, bracket_factor
    )


class NativeTransformStages:
    """In-process implementation of the three stages.

    Treats lines containing CJK ideographs as Chinese and every other text
    line as English. Output keeps the line endings and BOM of its input.
    """

    def merge_bilingual(self, content: str) -> str:
        merged: List[SrtEntry] = []
        for entry in parse_srt(content):
            english = [line for line in entry.lines if not is_chinese_line(line)]
            chinese = [line for line in entry.lines if is_chinese_line(line)]
            merged.append(
                SrtEntry(entry.index, entry.start_ts, entry.end_ts, english + chinese)
            )
        return render_srt(merged, detect_layout(content))

    def extract_primary_language(self, content: str) -> str:
        kept: List[SrtEntry] = []
        for entry in parse_srt(content):
            chinese = [line.strip() for line in entry.lines if is_chinese_line(line)]
            if not chinese:
                continue
            kept.append(SrtEntry(len(kept) + 1, entry.start_ts, entry.end_ts, chinese))
        return render_srt(kept, detect_layout(content))

    def wrap_lines(self, content: str, split_threshold: int, bracket_factor: float) -> str:
        wrapped: List[SrtEntry] = []
        for entry in parse_srt(content):
            lines: List[str] = []
            for line in entry.lines:
                lines.extend(wrap_line(line, split_threshold, bracket_factor))
            wrapped.append(SrtEntry(entry.index, entry.start_ts, entry.end_ts, lines))
        return render_srt(wrapped, detect_layout(content))
