"""Command execution on top of invoke."""

import contextlib
import os
import platform
from pathlib import Path

from invoke import Context, Result
from invoke.exceptions import CommandTimedOut

from pretested.core.log import logger


class Runner(Context):
    """invoke.Context with a single execute() entry point.

    Used for git commands in the workspace and for check commands.
    """

    def kill(self) -> None:
        """Kill the running subprocess.

        invoke sends signal.SIGKILL, which does not exist on
        Windows. os.kill() there accepts a plain number and hands
        it to TerminateProcess().
        """
        if platform.system() == "Windows":
            pid = self.pid if self.using_pty else self.process.pid
            with contextlib.suppress(ProcessLookupError):
                os.kill(pid, 9)
            return

        super().kill()

    def execute(
        self,
        command: str,
        cwd: Path | None = None,
        timeout: int | None = None,
        stdin: str | None = None,
        log_file: Path | None = None,
        log_level: str | None = None,
        check: bool = True,
        env: dict[str, str] | None = None,
    ) -> Result:
        """Run a command and capture its output.

        Args:
            command: Shell command line
            cwd: Working directory
            timeout: Maximum execution time in seconds
            stdin: Text fed to the command's stdin
            log_file: Where to write combined stdout/stderr
            log_level: Echo output lines to the logger at this level
            check: Raise on non-zero exit
            env: Extra environment variables (merged into os.environ)

        Returns:
            invoke.Result; ``exited`` is -1 when the command timed out

        Raises:
            invoke.UnexpectedExit: If check is True and the command
                fails
        """
        kwargs = {
            "hide": True,
            "warn": not check,
            "in_stream": False,
        }
        if timeout:
            kwargs["timeout"] = timeout
        if stdin is not None:
            from io import StringIO
            kwargs["in_stream"] = StringIO(stdin)
        if env:
            kwargs["env"] = env

        logger.spew("exec {command}", command=command, cwd=str(cwd or ""))

        try:
            if cwd:
                with self.cd(str(cwd)):
                    result = self.run(command, **kwargs)
            else:
                result = self.run(command, **kwargs)
        except CommandTimedOut as e:
            result = e.result
            result.exited = -1

        if log_file:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            log_file.write_text(result.stdout + result.stderr)

        if log_level:
            for line in (result.stdout + result.stderr).splitlines():
                logger.log(log_level, "{line}", line=line.rstrip())

        return result
