"""Subprocess helpers shared by the Terraform, AWS CLI and Helm wrappers."""

import subprocess
import sys
from pathlib import Path
from typing import Callable, Optional

# (command, working directory, echo to console) -> (exit code, output)
Runner = Callable[[list[str], Optional[Path], bool], tuple[int, str]]


def run_command(
    command: list[str], cwd: Optional[Path] = None, echo: bool = True
) -> tuple[int, str]:
    """Run ``command``, streaming its output to stdout when ``echo`` is set."""
    if not echo:
        result = subprocess.run(
            command, cwd=cwd, capture_output=True, text=True, check=False
        )
        if result.stderr:
            sys.stderr.write(result.stderr)
        return result.returncode, result.stdout

    lines = []
    with subprocess.Popen(
        command,
        cwd=cwd,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
        bufsize=1,
    ) as process:
        for line in process.stdout or ():
            sys.stdout.write(line)
            lines.append(line)
    return process.returncode, "".join(lines)
