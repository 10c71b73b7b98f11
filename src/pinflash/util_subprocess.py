from __future__ import annotations

import logging
import pathlib
import subprocess
import time

from .util_baseclasses import FlashToolFailureException
from .util_constants import (
    EXIT_CODE_SIGNAL_BASE,
    EXIT_CODE_TIMEOUT,
    EXIT_CODE_TOOL_NOT_FOUND,
    TOOL_TERMINATE_TIMEOUT_S,
)

logger = logging.getLogger(__file__)


def returncode_to_exit_code(returncode: int) -> int:
    """
    'subprocess' reports 'killed by signal N' as -N.
    The shell reports it as 128+N.
    """
    if returncode < 0:
        return EXIT_CODE_SIGNAL_BASE - returncode
    return returncode


def _terminate(proc: subprocess.Popen, args_text: str) -> None:
    if proc.poll() is not None:
        return
    logger.warning(f"EXEC terminate: {args_text}")
    proc.terminate()
    try:
        proc.wait(timeout=TOOL_TERMINATE_TIMEOUT_S)
    except subprocess.TimeoutExpired:
        logger.warning(f"EXEC kill after {TOOL_TERMINATE_TIMEOUT_S=}s: {args_text}")
        proc.kill()
        proc.wait()


def subprocess_run(
    args: list[str],
    cwd: pathlib.Path | None = None,
    env: dict[str, str] | None = None,
    logfile: pathlib.Path | None = None,
    timeout_s: float | None = None,
    success_returncodes: list[int] | None = None,
) -> int:
    """
    Wrapper around 'subprocess.Popen()'

    stdout/stderr are inherited: The user sees the progress of the flashing tool.
    If 'logfile' is given, stdout/stderr are written to it.

    If waiting is interrupted (signal, KeyboardInterrupt), the process
    is terminated before the exception propagates. A timeout terminates the
    process and raises FlashToolFailureException with EXIT_CODE_TIMEOUT.

    Returns the returncode. Raises FlashToolFailureException if
    the returncode is not in 'success_returncodes'.
    """
    assert isinstance(args, list)
    assert len(args) > 0
    assert isinstance(cwd, pathlib.Path | None)
    assert isinstance(env, dict | None)
    assert isinstance(logfile, pathlib.Path | None)
    assert isinstance(timeout_s, float | None)
    assert isinstance(success_returncodes, list | None)
    if success_returncodes is None:
        success_returncodes = [0]

    if env is not None:
        for key, value in env.items():
            assert isinstance(key, str)
            assert isinstance(value, str)

    args_text = " ".join(args)
    logger.info(f"EXEC {args_text}")

    begin_s = time.monotonic()

    def popen(**kwargs) -> subprocess.Popen:
        try:
            return subprocess.Popen(
                args=args,
                cwd=None if cwd is None else str(cwd),
                env=env,
                **kwargs,
            )
        except FileNotFoundError as e:
            raise FlashToolFailureException(
                f"EXEC failed, executable not found: {args[0]}",
                returncode=EXIT_CODE_TOOL_NOT_FOUND,
            ) from e

    def wait(proc: subprocess.Popen) -> int:
        try:
            return proc.wait(timeout=timeout_s)
        except subprocess.TimeoutExpired as e:
            logger.info(f"EXEC {e!r}")
            _terminate(proc, args_text)
            raise FlashToolFailureException(
                f"EXEC terminated after timeout {timeout_s}s: {args_text}",
                returncode=EXIT_CODE_TIMEOUT,
            ) from e
        except BaseException:
            _terminate(proc, args_text)
            raise

    if logfile is None:
        proc = popen()
        returncode = wait(proc)
    else:
        logger.info(f"EXEC     stdout: {logfile}")
        logfile.parent.mkdir(parents=True, exist_ok=True)
        with logfile.open("w") as f:
            f.write(f"cd {cwd}\n")
            f.write(f"{timeout_s=}\n")
            if env is not None:
                for k, v in env.items():
                    f.write(f"export {k}={v}\n")
            f.write("\n")
            f.write(f"{args_text}\n")
            f.write("\n\n")
            f.flush()
            proc = popen(stdout=f, stderr=subprocess.STDOUT)
            try:
                returncode = wait(proc)
            except FlashToolFailureException as e:
                f.write("\n\n")
                f.write(f"{e}\n")
                raise
            f.write(f"\n\nreturncode={returncode}\n")
            f.write(f"duration={time.monotonic() - begin_s:0.3f}s\n")

    def log(f) -> None:
        f(f"EXEC {args_text}")
        f(f"  cwd={cwd}")
        f(f"  returncode: {returncode}")
        f(f"  success_codes: {success_returncodes}")
        f(f"  duration: {time.monotonic() - begin_s:0.3f}s")
        if logfile is not None:
            f(f"  logfile: {logfile}")

    if returncode not in success_returncodes:
        log(logger.warning)
        msg = f"EXEC failed with returncode={returncode}: {args_text}"
        if logfile is not None:
            msg += f"\nlogfile={logfile}"
        raise FlashToolFailureException(
            msg, returncode=returncode_to_exit_code(returncode)
        )

    log(logger.debug)
    return returncode
