from __future__ import annotations

import os
import subprocess
from pathlib import Path
from typing import Mapping, Sequence


class CommandError(RuntimeError):
    def __init__(self, message: str, returncode: int | None = None, output: str = "") -> None:
        super().__init__(message)
        self.returncode = returncode
        self.output = output


def _merged_env(env: Mapping[str, str] | None) -> dict[str, str] | None:
    if env is None:
        return None
    merged = dict(os.environ)
    merged.update(env)
    return merged


def run_command(
    command: Sequence[str],
    *,
    cwd: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    timeout: float | None = None,
) -> subprocess.CompletedProcess[str]:
    """Run a subprocess command and return the completed process.

    Raises a CommandError with a helpful message if the command fails, times
    out or cannot be found. ``env`` entries are layered on top of the current
    environment.
    """

    try:
        result = subprocess.run(
            command,
            cwd=str(cwd) if cwd is not None else None,
            env=_merged_env(env),
            check=False,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError as exc:
        raise CommandError(
            f"Command not found: {command[0]}. Is it installed and on PATH?"
        ) from exc
    except subprocess.TimeoutExpired as exc:
        raise CommandError(f"Command timed out after {timeout}s ({command[0]})") from exc

    if result.returncode != 0:
        stderr = result.stderr.strip()
        stdout = result.stdout.strip()
        output = stderr or stdout
        raise CommandError(
            f"Command failed ({command[0]}): {output}",
            returncode=result.returncode,
            output=output,
        )

    return result


def run_filter(command: Sequence[str], data: bytes, *, timeout: float | None = None) -> bytes:
    """Pipe ``data`` through a command on stdin and return its raw stdout.

    Binary mode, so line endings and encodings pass through untouched.
    """

    try:
        result = subprocess.run(
            command,
            input=data,
            check=False,
            capture_output=True,
            timeout=timeout,
        )
    except FileNotFoundError as exc:
        raise CommandError(
            f"Command not found: {command[0]}. Is it installed and on PATH?"
        ) from exc
    except subprocess.TimeoutExpired as exc:
        raise CommandError(f"Command timed out after {timeout}s ({command[0]})") from exc

    if result.returncode != 0:
        output = result.stderr.decode("utf-8", errors="replace").strip()
        raise CommandError(
            f"Command failed ({command[0]}): {output}",
            returncode=result.returncode,
            output=output,
        )
    return result.stdout
