"""
Structured JSON Logging for Fault-Injection Runs

Every event is echoed to the console and, when a log directory is configured,
appended to a JSON Lines file for post-processing.
"""

import json
import os
import sys
import threading
import time
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Dict, Any, List, TextIO

LOG_DIR_ENV = "DBGTOOLS_LOG_DIR"


@dataclass
class LogEvent:
    """Structured log event."""
    wall_time: str
    monotonic_ns: int
    run_id: str
    event_type: str
    message: str = ""
    step_index: Optional[int] = None
    iteration: Optional[int] = None
    argv: Optional[List[str]] = None
    returncode: Optional[int] = None
    seconds: Optional[float] = None
    error_type: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)


class EventLog:
    """
    Structured event logger for one fault-injection run.

    Writes JSON Lines to `<output_dir>/<run_id>.jsonl` when an output directory
    is given (or DBGTOOLS_LOG_DIR is set). Thread-safe.
    """

    def __init__(
        self,
        run_id: Optional[str] = None,
        output_dir: Optional[Path] = None,
        console_output: bool = True,
        stream: Optional[TextIO] = None
    ):
        self.run_id = run_id or f"run_{datetime.now().strftime('%Y%m%d_%H%M%S')}"
        self.console_output = console_output
        self.stream = stream
        self._lock = threading.Lock()
        self._start_time = time.monotonic_ns()
        self._file_handle: Optional[TextIO] = None
        self.log_file: Optional[Path] = None

        if output_dir is None and os.environ.get(LOG_DIR_ENV):
            output_dir = Path(os.environ[LOG_DIR_ENV])

        if output_dir is not None:
            output_dir = Path(output_dir)
            output_dir.mkdir(parents=True, exist_ok=True)
            self.log_file = output_dir / f"{self.run_id}.jsonl"
            self._file_handle = open(self.log_file, "a")

    def _create_event(self, event_type: str, message: str = "", **kwargs) -> LogEvent:
        return LogEvent(
            wall_time=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            monotonic_ns=time.monotonic_ns(),
            run_id=self.run_id,
            event_type=event_type,
            message=message,
            **kwargs
        )

    def _write(self, event: LogEvent):
        event_dict = asdict(event)
        # Drop unset fields
        event_dict = {k: v for k, v in event_dict.items() if v is not None and v != {}}

        with self._lock:
            if self._file_handle is not None:
                self._file_handle.write(json.dumps(event_dict, separators=(',', ':')) + "\n")
                self._file_handle.flush()

            if self.console_output:
                level = "ERROR" if event.error_type else "INFO"
                stream = self.stream or sys.stdout
                print(f"[{event.wall_time[11:19]}] [{level}] {event.event_type}: {event.message}",
                      file=stream, flush=True)

    def info(self, event_type: str, message: str = "", **kwargs):
        """Log an info event."""
        self._write(self._create_event(event_type, message, **kwargs))

    def error(self, event_type: str, message: str = "", error_type: str = "error", **kwargs):
        """Log an error event."""
        self._write(self._create_event(event_type, message, error_type=error_type, **kwargs))

    def iteration(self, iteration: int, step_index: int, argv: Optional[List[str]] = None,
                  seconds: Optional[float] = None):
        """Announce the step about to run."""
        self.info(
            "iteration",
            f"Iteration {iteration}",
            iteration=iteration,
            step_index=step_index,
            argv=argv,
            seconds=seconds
        )

    def step_failed(self, iteration: int, step_index: int, argv: List[str], returncode: int):
        """Record a command that exited nonzero."""
        self.error(
            "step_failed",
            f"{' '.join(argv)} exited with {returncode}",
            error_type="nonzero_exit",
            iteration=iteration,
            step_index=step_index,
            argv=argv,
            returncode=returncode
        )

    def close(self):
        """Close the log file, if any."""
        with self._lock:
            if self._file_handle is not None:
                self._file_handle.close()
                self._file_handle = None

    @property
    def elapsed_seconds(self) -> float:
        return (time.monotonic_ns() - self._start_time) / 1_000_000_000

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is KeyboardInterrupt:
            self.error("interrupted", "Interrupted", error_type="KeyboardInterrupt")
        elif exc_type:
            self.error("run_error", str(exc_val), error_type=exc_type.__name__)
        self.close()
        return False
