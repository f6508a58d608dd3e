"""
Running the external Maven build.

The build's stdout and stderr are merged into a single pipe that is read
line by line as the process produces it.
"""

import subprocess
from pathlib import Path
from typing import Iterator, List, Optional

from .cli_config import BuildConfig
from .error_handling import BuildLaunchError
from .structured_logging import get_build_logger, log_build_finished


class BuildProcess:
    """A running build: iterate ``lines()`` then call ``wait()`` for the exit status."""

    def __init__(self, process: subprocess.Popen, command: List[str]):
        self.process = process
        self.command = command
        self.line_count = 0

    def lines(self) -> Iterator[str]:
        """Yield output lines in production order, without line terminators."""
        for line in self.process.stdout:
            self.line_count += 1
            yield line.rstrip("\r\n")

    def wait(self) -> int:
        """Drain unread output, block until the process exits and return its status."""
        for _ in self.process.stdout:
            self.line_count += 1
        self.process.stdout.close()
        status = self.process.wait()
        log_build_finished(status, self.line_count)
        return status

    def __enter__(self) -> "BuildProcess":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self.process.poll() is None:
            self.process.kill()
            self.process.wait()
        if self.process.stdout and not self.process.stdout.closed:
            self.process.stdout.close()


class BuildRunner:
    """Starts ``<maven> clean compile --fail-at-end`` in the descriptor's directory."""

    def __init__(self, config: Optional[BuildConfig] = None):
        self.config = config or BuildConfig()

    def command(self) -> List[str]:
        return [self.config.maven_executable, *self.config.goals]

    def start(self, descriptor_path: Path) -> BuildProcess:
        """
        Launch the build for ``descriptor_path``.

        Raises:
            BuildLaunchError: If the executable is missing or cannot be spawned
        """
        workdir = Path(descriptor_path).parent
        command = self.command()
        get_build_logger().info("build_started", command=command, workdir=str(workdir))
        try:
            process = subprocess.Popen(
                command,
                cwd=workdir,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                stdin=subprocess.DEVNULL,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as e:
            raise BuildLaunchError(f"Cannot run {command[0]}: {e}") from e
        return BuildProcess(process, command)
