"""
Test Helpers - Fakes for running the tools without real processes.

Includes:
- FakeRunner: records every command instead of executing it
- RecordingSleep: records sleep durations instead of sleeping
"""

from typing import Callable, Iterable, List, Optional, Sequence


class FakeRunner:
    """Stand-in for CommandRunner.

    Args:
        responder: Maps an argv list to an exit code (default: always 0)
        available: Program names which() should resolve

    Example:
        >>> runner = FakeRunner(lambda argv: 0 if "devnet" in " ".join(argv) else 1)
        >>> runner.run(["solana-gossip", "spy"], quiet=True)
        1
    """

    def __init__(
        self,
        responder: Optional[Callable[[List[str]], int]] = None,
        available: Iterable[str] = ("solana-gossip",)
    ):
        self.responder = responder or (lambda argv: 0)
        self.available = set(available)
        self.calls: List[List[str]] = []
        self.quiet: List[bool] = []
        self.which_calls: List[str] = []

    def which(self, program: str) -> Optional[str]:
        self.which_calls.append(program)
        return f"/usr/bin/{program}" if program in self.available else None

    def run(self, argv: Sequence[str], quiet: bool = False) -> int:
        argv = list(argv)
        self.calls.append(argv)
        self.quiet.append(quiet)
        return self.responder(argv)


class RecordingSleep:
    """Callable that records requested sleeps."""

    def __init__(self):
        self.calls: List[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class InterruptAfter:
    """Responder that raises KeyboardInterrupt on the n-th command."""

    def __init__(self, n: int):
        self.n = n
        self.count = 0

    def __call__(self, argv: List[str]) -> int:
        self.count += 1
        if self.count >= self.n:
            raise KeyboardInterrupt
        return 0
