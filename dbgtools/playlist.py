"""
Fault-Injection Playlist

The playlist is an immutable, ordered tuple of steps. Each adversarial
condition is switched on, left running for `runtime` seconds, switched back
to baseline, and the cluster gets `sleeptime` seconds to recover before the
next condition starts.

Steps are either Invoke (run a command) or Sleep (wait). Neither knows how it
is executed; FaultInjector does that.
"""

import itertools
import shlex
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Tuple, Union

KEYPAIR_FLAG = "--rpc-adversary-keypair"

# Smaller clusters cannot satisfy the default ancestor hash sample
ANCESTOR_HASH_REPAIR_SAMPLE_SIZE = 2

INVALIDATION_KINDS = ("invalidFeePayer", "invalidSignature")

REPAIR_TESTS = (
    "minimal_packets",
    "ping_cache_overflow",
    "unavailable_slots",
    "ping_overflow_with_orphan",
)
REPAIR_DISABLE = "disable"

GOSSIP_FLOOD_ARGS = (
    "--flood-strategy", "pingCacheOverflow",
    "--iteration-delay-us", "1000000",
    "--packets-per-peer-per-iteration", "10000",
)

REPLAY_STAGE_ATTACKS = (
    "transferRandom",
    "createNonceAccounts",
    "allocateRandomLarge",
    "allocateRandomSmall",
    "chainTransactions",
)


@dataclass(frozen=True)
class Invoke:
    """Run an external command and wait for it."""
    argv: Tuple[str, ...]

    def __str__(self) -> str:
        return shlex.join(self.argv)


@dataclass(frozen=True)
class Sleep:
    """Do nothing for a fixed number of seconds."""
    seconds: float

    def __str__(self) -> str:
        return f"sleep {self.seconds:g}"


Step = Union[Invoke, Sleep]


def keypair_args(keypair: Optional[str]) -> Tuple[str, ...]:
    """Arguments forwarded to every adversary and repair-script call."""
    return (KEYPAIR_FLAG, keypair) if keypair else ()


def adversary(bin_path: str, keypair: Optional[str], subcommand: str, *args: str) -> Invoke:
    return Invoke((bin_path, *keypair_args(keypair), subcommand, *args))


def repair_test(script: str, keypair: Optional[str], test: str) -> Invoke:
    return Invoke((script, *keypair_args(keypair), "--test", test))


def setup_step(bin_path: str, keypair: Optional[str] = None) -> Invoke:
    """One-off configuration run before the playlist starts."""
    return adversary(
        bin_path, keypair,
        "configure-repair-parameters",
        "--ancestor-hash-repair-sample-size", str(ANCESTOR_HASH_REPAIR_SAMPLE_SIZE),
    )


def build_playlist(
    bin_path: str,
    repair_script: str,
    runtime: float,
    sleeptime: float,
    keypair: Optional[str] = None
) -> Tuple[Step, ...]:
    """
    Build the fixed playlist.

    Args:
        bin_path: Adversary configuration tool
        repair_script: Path to repair-tests.sh
        runtime: Seconds each condition stays enabled
        sleeptime: Seconds of recovery after each reset
        keypair: Optional RPC adversary keypair forwarded to every call

    Returns:
        Tuple of steps, four per condition: enable, run, reset, recover
    """
    cases: List[Tuple[Invoke, Invoke]] = []

    for kind in INVALIDATION_KINDS:
        cases.append((
            adversary(bin_path, keypair, "configure-invalidate-leader-block", "--invalidation-kind", kind),
            adversary(bin_path, keypair, "configure-invalidate-leader-block"),
        ))

    cases.append((
        adversary(bin_path, keypair, "configure-drop-turbine-votes", "--drop", "true"),
        adversary(bin_path, keypair, "configure-drop-turbine-votes", "--drop", "false"),
    ))

    for test in REPAIR_TESTS:
        cases.append((
            repair_test(repair_script, keypair, test),
            repair_test(repair_script, keypair, REPAIR_DISABLE),
        ))

    cases.append((
        adversary(bin_path, keypair, "configure-gossip-packet-flood", *GOSSIP_FLOOD_ARGS),
        adversary(bin_path, keypair, "configure-gossip-packet-flood"),
    ))

    for attack in REPLAY_STAGE_ATTACKS:
        cases.append((
            adversary(bin_path, keypair, "configure-replay-stage-attack", "--selected-attack", attack),
            adversary(bin_path, keypair, "configure-replay-stage-attack"),
        ))

    steps: List[Step] = []
    for enable, reset in cases:
        steps.extend((enable, Sleep(runtime), reset, Sleep(sleeptime)))
    return tuple(steps)


def step_index(counter: int, length: int) -> int:
    """Playlist position of the counter-th step executed."""
    return counter % length


def total_steps(iterations: Optional[int], length: int) -> Optional[int]:
    """Number of steps to run, or None to run forever."""
    if not iterations:
        return None
    return iterations * length


def iterate_steps(playlist: Sequence[Step], iterations: Optional[int] = None) -> Iterator[Tuple[int, Step]]:
    """
    Yield (counter, step) pairs, wrapping around the playlist.

    Unbounded when iterations is None or 0; otherwise stops after
    iterations * len(playlist) steps.
    """
    if not playlist:
        raise ValueError("playlist is empty")
    length = len(playlist)
    limit = total_steps(iterations, length)
    counters = itertools.count() if limit is None else range(limit)
    for counter in counters:
        yield counter, playlist[step_index(counter, length)]
