"""
Fault-Injection Loop

Loops through the adversary playlist against a running validator.
Commands run one at a time; a failing command does not stop the loop unless
strict mode is on. Ctrl-C to exit an unbounded run.

Usage:
    fault-injector --runtime 120 --sleeptime 60 [--iterations 3] \\
        [--rpc-adversary-keypair adversary.json]
"""

import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Tuple

from .errors import StepFailed, UsageError
from .logger import EventLog
from .playlist import Invoke, Sleep, Step, build_playlist, iterate_steps, setup_step, step_index
from .runner import CommandRunner

ADVERSARY_BIN_ENV = "BIN"
REPAIR_SCRIPT_ENV = "REPAIR_TESTS_SH"
DEFAULT_REPAIR_SCRIPT = "repair-tests.sh"


def default_adversary_bin() -> Optional[str]:
    return os.environ.get(ADVERSARY_BIN_ENV) or None


def default_repair_script() -> str:
    return os.environ.get(REPAIR_SCRIPT_ENV) or str(Path.cwd() / DEFAULT_REPAIR_SCRIPT)


@dataclass
class RunConfig:
    """Options for one fault-injection run."""
    runtime: float
    sleeptime: float
    adversary_bin: str
    repair_script: str
    iterations: Optional[int] = None
    keypair: Optional[str] = None
    strict: bool = False
    log_dir: Optional[Path] = None

    def validate(self):
        """Raise UsageError for values the loop cannot run with."""
        if self.runtime is None:
            raise UsageError("--runtime argument is required")
        if self.sleeptime is None:
            raise UsageError("--sleeptime argument is required")
        if self.runtime < 0:
            raise UsageError("--runtime must not be negative")
        if self.sleeptime < 0:
            raise UsageError("--sleeptime must not be negative")
        if self.iterations is not None and self.iterations < 0:
            raise UsageError("--iterations must not be negative")
        if not self.adversary_bin:
            raise UsageError(f"adversary tool required (--bin or ${ADVERSARY_BIN_ENV})")


class FaultInjector:
    """
    Drives the playlist.

    The runner and sleep function are injectable so the loop can be exercised
    without real processes or wall-clock time.
    """

    def __init__(
        self,
        config: RunConfig,
        runner: Optional[CommandRunner] = None,
        sleep: Callable[[float], None] = time.sleep,
        log: Optional[EventLog] = None
    ):
        config.validate()
        self.config = config
        self.runner = runner or CommandRunner()
        self.sleep = sleep
        self.log = log or EventLog(output_dir=config.log_dir)
        self.playlist: Tuple[Step, ...] = build_playlist(
            config.adversary_bin,
            config.repair_script,
            config.runtime,
            config.sleeptime,
            keypair=config.keypair
        )
        self.steps_executed = 0

    def setup(self):
        """Reduce the ancestor hash sample size for small clusters."""
        step = setup_step(self.config.adversary_bin, self.config.keypair)
        self.log.info("setup", str(step), argv=list(step.argv))
        returncode = self.runner.run(step.argv)
        self._check(step, returncode, iteration=None, index=None)

    def execute(self, step: Step, iteration: int, index: int) -> int:
        """Run a single step synchronously; return its exit code (0 for sleeps)."""
        if isinstance(step, Sleep):
            self.log.iteration(iteration, index, seconds=step.seconds)
            self.sleep(step.seconds)
            return 0

        self.log.iteration(iteration, index, argv=list(step.argv))
        returncode = self.runner.run(step.argv)
        self._check(step, returncode, iteration, index)
        return returncode

    def _check(self, step: Invoke, returncode: int, iteration, index):
        if returncode == 0:
            return
        self.log.step_failed(iteration, index, list(step.argv), returncode)
        if self.config.strict:
            raise StepFailed(step, returncode)

    def run(self) -> int:
        """
        Run setup, then the playlist.

        Returns:
            Number of playlist steps executed (only reached when iterations is set)

        Raises:
            StepFailed: A command failed and strict mode is on
        """
        self.log.info(
            "run_start",
            f"{len(self.playlist)} steps per pass, "
            f"{self.config.iterations or 'unbounded'} passes",
            extra={
                "runtime": self.config.runtime,
                "sleeptime": self.config.sleeptime,
                "strict": self.config.strict,
            }
        )
        with self.log:
            self.setup()
            for counter, step in iterate_steps(self.playlist, self.config.iterations):
                self.execute(step, counter, step_index(counter, len(self.playlist)))
                self.steps_executed += 1
            self.log.info(
                "run_complete",
                f"{self.steps_executed} steps in {self.log.elapsed_seconds:.1f}s"
            )
        return self.steps_executed
