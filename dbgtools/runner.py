"""
Subprocess Execution

Runs external tools synchronously with an explicit child environment.
Nothing here mutates os.environ; every child gets the mapping built by
ChildEnvironment.

Usage:
    from dbgtools.runner import ChildEnvironment, CommandRunner

    runner = CommandRunner(ChildEnvironment.from_environ())
    code = runner.run(["solana-gossip", "--version"], quiet=True)
"""

import os
import shutil
import subprocess
import sys
from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Sequence

import psutil

# Component verbosity handed to the validator tooling when RUST_LOG is unset
DEFAULT_RUST_LOG = "solana=info,solana_runtime::message_processor=debug"

# Exit codes a shell reports for commands it cannot start
EXIT_NOT_FOUND = 127
EXIT_NOT_EXECUTABLE = 126

# Seconds to wait for children to exit after SIGTERM before SIGKILL
TERMINATE_GRACE_SECONDS = 5.0


@dataclass(frozen=True)
class ChildEnvironment:
    """Log and backtrace settings inherited by every child process."""
    rust_log: str = DEFAULT_RUST_LOG
    rust_backtrace: str = "1"

    @classmethod
    def from_environ(cls, environ: Optional[Mapping[str, str]] = None) -> "ChildEnvironment":
        """Take RUST_LOG from the caller's environment, falling back when unset or empty."""
        environ = os.environ if environ is None else environ
        return cls(rust_log=environ.get("RUST_LOG") or DEFAULT_RUST_LOG)

    def build(self, base: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
        """Return a full environment mapping for a child process."""
        env = dict(os.environ if base is None else base)
        env["RUST_LOG"] = self.rust_log
        env["RUST_BACKTRACE"] = self.rust_backtrace
        return env


class CommandRunner:
    """
    Synchronous runner for external commands.

    Launch errors are reported the way a shell would report them (127 for a
    missing program, 126 for one that cannot be executed) so callers only ever
    deal with exit codes.
    """

    def __init__(
        self,
        env: Optional[ChildEnvironment] = None,
        base_environ: Optional[Mapping[str, str]] = None
    ):
        self.env = env or ChildEnvironment()
        self._child_environ = self.env.build(base_environ)

    def which(self, program: str) -> Optional[str]:
        """Resolve a program on the child's PATH."""
        return shutil.which(program, path=self._child_environ.get("PATH"))

    def run(self, argv: Sequence[str], quiet: bool = False) -> int:
        """
        Run a command to completion and return its exit code.

        Args:
            argv: Program and arguments
            quiet: Discard the child's stdout and stderr

        Returns:
            The child's exit code, or 127/126 if it could not be started
        """
        output = subprocess.DEVNULL if quiet else None
        try:
            proc = subprocess.Popen(
                list(argv),
                env=self._child_environ,
                stdout=output,
                stderr=output
            )
        except FileNotFoundError:
            if not quiet:
                print(f"{argv[0]}: command not found", file=sys.stderr)
            return EXIT_NOT_FOUND
        except PermissionError:
            if not quiet:
                print(f"{argv[0]}: permission denied", file=sys.stderr)
            return EXIT_NOT_EXECUTABLE
        except OSError as e:
            if not quiet:
                print(f"{argv[0]}: {e.strerror}", file=sys.stderr)
            return EXIT_NOT_EXECUTABLE

        try:
            return proc.wait()
        except KeyboardInterrupt:
            terminate_tree(proc.pid)
            proc.wait()
            raise


def terminate_tree(pid: int, grace: float = TERMINATE_GRACE_SECONDS) -> None:
    """Terminate a process and all of its descendants, children first."""
    try:
        parent = psutil.Process(pid)
        procs = parent.children(recursive=True)
    except psutil.NoSuchProcess:
        return
    procs.append(parent)

    for proc in procs:
        try:
            proc.terminate()
        except psutil.NoSuchProcess:
            pass

    _, alive = psutil.wait_procs(procs, timeout=grace)
    for proc in alive:
        try:
            proc.kill()
        except psutil.NoSuchProcess:
            pass
