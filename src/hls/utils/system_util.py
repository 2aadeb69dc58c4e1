"""
Utility functions for running system commands and verifying binary availability.

Functions:
    - run_cmd: Executes a command given as an argument vector and returns its
      exit code along with its standard output and error streams.
    - shell_join: Renders an argument vector as a shell-quoted string for logs.
    - which_or_die: Checks for the presence of a specific binary on the system's
      PATH and terminates the process if it is unavailable.
"""
import shlex
import shutil
import subprocess
import sys
from typing import Sequence, Tuple

from hls.utils.logger import LogLevel, log


def run_cmd(cmd: Sequence[str]) -> Tuple[int, str, str]:
    """Run a command and return (code, stdout, stderr)."""
    p = subprocess.run([str(c) for c in cmd], stdout=subprocess.PIPE, stderr=subprocess.PIPE,
                       text=True, errors="replace")
    return p.returncode, p.stdout, p.stderr


def shell_join(cmd: Sequence[str]) -> str:
    """Quote an argument vector for display only; commands are never run through a shell."""
    return shlex.join(str(c) for c in cmd)


def which_or_die(binary: str):
    """Check if a binary exists on PATH, exit if not found."""
    if shutil.which(binary) is None:
        log("startup.error", LogLevel.ERROR, binary=binary,
            msg="Not found on PATH. Install it first (e.g. brew install ffmpeg).")
        sys.exit(2)
