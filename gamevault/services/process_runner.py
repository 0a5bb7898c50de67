"""
Process Runner - async execution of external database tools.

Commands are always passed as argument lists (no shell), with an
environment overlay merged over the server's own environment so that
credentials such as PGPASSWORD never appear on a command line.
"""

import asyncio
import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

from gamevault.services.errors import ProcessExecutionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessResult:
    args: tuple[str, ...]
    exit_code: int
    stdout: str
    stderr: str


class ProcessRunner:
    """Runs one external command at a time and waits for it to finish."""

    def __init__(self, default_timeout: Optional[float] = None):
        self.default_timeout = default_timeout

    async def run(
        self,
        args: Sequence[str],
        env: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> ProcessResult:
        """
        Execute a command and return its captured output.

        Args:
            args: Program and arguments, e.g. ["pg_dump", "-F", "t", ...]
            env: Variables overlaid on the current environment
            timeout: Seconds before the process is killed (default_timeout if None)

        Raises:
            ProcessExecutionError: spawn failure, timeout or non-zero exit
        """
        args = tuple(str(a) for a in args)
        timeout = timeout if timeout is not None else self.default_timeout
        full_env = os.environ.copy()
        if env:
            full_env.update(env)

        logger.debug(f"Running command: {args[0]}")
        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                env=full_env,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            logger.error(f"Failed to start {args[0]}: {e}")
            raise ProcessExecutionError(args, f"Failed to start {args[0]}: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            process.kill()
            stdout, stderr = await process.communicate()
            logger.error(f"{args[0]} timed out after {timeout} seconds")
            raise ProcessExecutionError(
                args,
                f"{args[0]} timed out after {timeout} seconds",
                exit_code=process.returncode,
                stdout=stdout.decode(errors="replace"),
                stderr=stderr.decode(errors="replace"),
            )

        result = ProcessResult(
            args=args,
            exit_code=process.returncode,
            stdout=stdout.decode(errors="replace"),
            stderr=stderr.decode(errors="replace"),
        )
        if result.exit_code != 0:
            logger.error(
                f"{args[0]} exited with code {result.exit_code}: {result.stderr.strip()}"
            )
            raise ProcessExecutionError(
                args,
                f"{args[0]} exited with code {result.exit_code}",
                exit_code=result.exit_code,
                stdout=result.stdout,
                stderr=result.stderr,
            )
        return result
