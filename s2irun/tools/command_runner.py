"""
command_runner.py

Runner for external processes with streamed output.
"""

import os
import subprocess
import threading
from dataclasses import dataclass, field
from typing import Optional, Dict, List, IO

from ..abstract_class import AbstractClass
from ..exceptions import ExternalToolError


@dataclass
class CommandOptions:
    """
    Options for running an external command.

    Attributes:
        cwd: Working directory of the process
        env: Extra environment variables merged over os.environ
        timeout: Seconds before the process is killed (None waits forever)
        stream_output: Echo stdout/stderr lines to the console while running
    """
    cwd: Optional[str] = None
    env: Dict[str, str] = field(default_factory=dict)
    timeout: Optional[float] = None
    stream_output: bool = True


class CommandRunner(AbstractClass):
    """
    Runs external executables, streaming their output in real time.
    """

    def run_with_options(self, opts: CommandOptions, executable: str, *args: str) -> str:
        """
        Run executable with args and wait for it to finish.

        Args:
            opts: Command options
            executable: Path or name of the executable
            *args: Arguments passed to the executable

        Returns:
            Combined stdout/stderr output

        Raises:
            ExternalToolError: If the process cannot start, exits non-zero or times out
        """
        command = [executable] + list(args)
        env = os.environ.copy()
        env.update(opts.env)

        self.logger.debug(f"Command: {' '.join(command)}")
        if opts.cwd:
            self.logger.debug(f"Set cwd to: {opts.cwd}")

        try:
            process = subprocess.Popen(
                command,
                env=env,
                cwd=opts.cwd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                encoding="utf-8",
                errors="replace",
            )
        except (OSError, ValueError) as e:
            raise ExternalToolError(f"Failed to start {executable}: {e}") from e

        output: List[str] = []
        reader = threading.Thread(
            target=self._stream_output,
            args=(process.stdout, output, opts.stream_output),
            daemon=True,
        )
        reader.start()

        try:
            returncode = process.wait(timeout=opts.timeout)
        except subprocess.TimeoutExpired as e:
            process.kill()
            process.wait()
            raise ExternalToolError(
                f"{executable} did not finish within {opts.timeout} seconds"
            ) from e
        finally:
            reader.join()

        combined = ''.join(output)
        if returncode != 0:
            self.print_error(f"{executable} exited with status {returncode}")
            raise ExternalToolError(f"{executable} exited with status {returncode}")
        return combined

    def run(self, executable: str, *args: str) -> str:
        """Run with default options."""
        return self.run_with_options(CommandOptions(), executable, *args)

    def _stream_output(self, stream: IO, output: List[str], echo: bool) -> None:
        for line in stream:
            output.append(line)
            if echo:
                self.cprint(line.rstrip(), "light_grey")
        stream.close()
