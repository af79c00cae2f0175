"""Run external media tools with merged output and bounded run time."""

from __future__ import annotations

import logging
import os
import subprocess
import time
from dataclasses import dataclass
from typing import Mapping, Sequence

from subtitle_translator import logging_manager as log_mgr
from subtitle_translator.errors import CommandExecutionError

logger = log_mgr.get_logger().getChild("media.command")

# Only the tail of a failing tool's output goes into the log record.
OUTPUT_TAIL_CHARS = 2000


@dataclass(slots=True)
class CommandResult:
    """Exit status and combined stdout/stderr of a finished command."""

    command: tuple[str, ...]
    returncode: int
    output: str
    duration: float


def _child_environment(overrides: Mapping[str, str] | None) -> dict[str, str]:
    environment = dict(os.environ)
    for key, value in (overrides or {}).items():
        environment[str(key)] = str(value)
    return environment


def _as_text(payload: str | bytes | None) -> str:
    if isinstance(payload, bytes):
        return payload.decode("utf-8", errors="replace")
    return payload or ""


def run_command(
    command: Sequence[str],
    *,
    timeout: float | None = None,
    env: Mapping[str, str] | None = None,
    cwd: str | None = None,
    check: bool = True,
    logger_obj: logging.Logger | None = None,
) -> CommandResult:
    """Run ``command`` and return its merged output.

    A non-zero exit (when ``check`` is set), an expired ``timeout`` or an
    executable that cannot be started raise :class:`CommandExecutionError`.
    ``subprocess.run`` kills the child before the timeout error surfaces.
    """

    log = logger_obj or logger
    argv = tuple(str(part) for part in command)
    log.debug(
        "Running %s",
        argv[0] if argv else "<empty>",
        extra={"event": "media.command.start", "command": list(argv), "timeout": timeout},
    )

    started = time.monotonic()
    try:
        completed = subprocess.run(
            argv,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            cwd=cwd,
            env=_child_environment(env),
            timeout=timeout,
            text=True,
            encoding="utf-8",
            errors="replace",
            check=False,
        )
    except subprocess.TimeoutExpired as exc:
        log.warning(
            "Command timed out after %.3fs",
            time.monotonic() - started,
            extra={"event": "media.command.timeout", "command": list(argv)},
        )
        raise CommandExecutionError(
            argv,
            output=_as_text(exc.output),
            cause=exc,
            timeout=True,
            timeout_seconds=timeout,
        ) from exc
    except OSError as exc:
        log.error(
            "Command could not be started: %s",
            exc,
            extra={"event": "media.command.start_failed", "command": list(argv)},
        )
        raise CommandExecutionError(argv, cause=exc) from exc

    result = CommandResult(
        command=argv,
        returncode=completed.returncode,
        output=_as_text(completed.stdout),
        duration=time.monotonic() - started,
    )
    if check and result.returncode != 0:
        log.warning(
            "Command exited with status %s",
            result.returncode,
            extra={
                "event": "media.command.failed",
                "command": list(argv),
                "output_tail": result.output[-OUTPUT_TAIL_CHARS:],
            },
        )
        raise CommandExecutionError(argv, returncode=result.returncode, output=result.output)

    log.debug(
        "Command finished in %.3fs",
        result.duration,
        extra={"event": "media.command.finished", "returncode": result.returncode},
    )
    return result


__all__ = ["CommandResult", "run_command"]
