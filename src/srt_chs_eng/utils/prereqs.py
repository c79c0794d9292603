from __future__ import annotations

import shutil

from srt_chs_eng.errors import ExecutorUnavailableError


AWK_MISSING_MESSAGE = (
    "awk is required to run the srt-tools transforms. "
    "Install it (e.g. `apt-get install gawk`) and ensure it is on your PATH."
)


def require_awk() -> None:
    if shutil.which("awk") is None:
        raise ExecutorUnavailableError(AWK_MISSING_MESSAGE)
