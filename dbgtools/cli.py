"""
Command Line Entry Points

    cluster-finder <node_pubkey>
    fault-injector --runtime <sec> --sleeptime <sec> [--iterations <n>]
                   [--rpc-adversary-keypair <path>]
    dbgtools {find-node,fault-loop} ...

The two tools are independent; neither ever runs the other.

Exit codes:
    0 = Success (or --help)
    1 = Usage error, missing dependency, or strict-mode command failure
    130 = Interrupted
"""

import argparse
import sys
import time
from pathlib import Path
from typing import Callable, List, Optional

from . import __version__
from .cluster_finder import GOSSIP_BIN, find_clusters
from .errors import MissingDependencyError, StepFailed, UsageError
from .fault_injector import (
    FaultInjector,
    RunConfig,
    default_adversary_bin,
    default_repair_script,
)
from .playlist import build_playlist
from .runner import ChildEnvironment, CommandRunner

EXIT_INTERRUPTED = 130


class ToolParser(argparse.ArgumentParser):
    """ArgumentParser that reports errors with full usage and exits 1."""

    def __init__(self, *args, **kwargs):
        # Flags must match exactly; no prefix matching
        kwargs.setdefault("allow_abbrev", False)
        super().__init__(*args, **kwargs)

    def error(self, message):
        self.fail(message)

    def fail(self, message: str):
        print(f"Error: {message}", file=sys.stderr)
        print(file=sys.stderr)
        self.print_help(sys.stderr)
        sys.exit(1)


# Suffixes understood by coreutils sleep
DURATION_UNITS = {"s": 1, "m": 60, "h": 3600, "d": 86400}


def non_negative_float(value: str) -> float:
    """Parse a duration in seconds, optionally suffixed with s, m, h or d."""
    number, scale = value, 1
    if value and value[-1] in DURATION_UNITS:
        number, scale = value[:-1], DURATION_UNITS[value[-1]]
    try:
        seconds = float(number) * scale
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid duration: {value!r}")
    if not seconds >= 0:
        raise argparse.ArgumentTypeError(f"must not be negative: {value!r}")
    return seconds


def non_negative_int(value: str) -> int:
    try:
        count = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid count: {value!r}")
    if count < 0:
        raise argparse.ArgumentTypeError(f"must not be negative: {value!r}")
    return count


def default_runner() -> CommandRunner:
    return CommandRunner(ChildEnvironment.from_environ())


# ============================================================================
# Cluster Finder
# ============================================================================

def add_cluster_finder_arguments(parser: argparse.ArgumentParser):
    parser.add_argument("node_pubkey", nargs="?", default="",
                        help="Identity pubkey of the node to look for")
    parser.add_argument("--gossip-bin", default=GOSSIP_BIN,
                        help=f"Gossip tool to spy with (default: {GOSSIP_BIN})")


def run_cluster_finder(args: argparse.Namespace, parser: ToolParser,
                       runner: Optional[CommandRunner] = None) -> int:
    runner = runner or default_runner()
    try:
        find_clusters(args.node_pubkey, runner, gossip_bin=args.gossip_bin)
    except UsageError as e:
        parser.fail(str(e))
    except MissingDependencyError as e:
        print(e, file=sys.stderr)
        return 1
    return 0


def cluster_finder_parser(prog: Optional[str] = None) -> ToolParser:
    parser = ToolParser(
        prog=prog,
        description="Find which public cluster a node identity is gossiping on"
    )
    add_cluster_finder_arguments(parser)
    return parser


def cluster_finder_main(argv: Optional[List[str]] = None,
                        runner: Optional[CommandRunner] = None) -> int:
    parser = cluster_finder_parser()
    args = parser.parse_args(argv)
    return run_cluster_finder(args, parser, runner)


# ============================================================================
# Fault-Injection Loop
# ============================================================================

def add_fault_injector_arguments(parser: argparse.ArgumentParser):
    parser.add_argument("--runtime", type=non_negative_float,
                        help="Time each adversarial condition stays enabled, in seconds or with an s/m/h/d suffix (required)")
    parser.add_argument("--sleeptime", type=non_negative_float,
                        help="Recovery time after each reset, in seconds or with an s/m/h/d suffix (required)")
    parser.add_argument("--iterations", type=non_negative_int, default=None,
                        help="Full passes through the playlist (default: 0, run forever)")
    parser.add_argument("--rpc-adversary-keypair", dest="keypair", default=None,
                        help="Keypair forwarded to the adversary tool and repair script")
    parser.add_argument("--bin", dest="adversary_bin", default=default_adversary_bin(),
                        help="Adversary configuration tool (default: $BIN)")
    parser.add_argument("--repair-script", default=default_repair_script(),
                        help="Path to repair-tests.sh (default: $REPAIR_TESTS_SH or ./repair-tests.sh)")
    parser.add_argument("--strict", action="store_true",
                        help="Stop at the first command that exits nonzero")
    parser.add_argument("--log-dir", type=Path, default=None,
                        help="Write a JSON Lines event log to this directory")
    parser.add_argument("--list", action="store_true",
                        help="Print the playlist and exit")


def run_fault_injector(
    args: argparse.Namespace,
    parser: ToolParser,
    runner: Optional[CommandRunner] = None,
    sleep: Callable[[float], None] = time.sleep
) -> int:
    config = RunConfig(
        runtime=args.runtime,
        sleeptime=args.sleeptime,
        adversary_bin=args.adversary_bin,
        repair_script=args.repair_script,
        iterations=args.iterations,
        keypair=args.keypair,
        strict=args.strict,
        log_dir=args.log_dir
    )
    try:
        config.validate()
    except UsageError as e:
        parser.fail(str(e))

    if args.list:
        playlist = build_playlist(config.adversary_bin, config.repair_script,
                                  config.runtime, config.sleeptime, keypair=config.keypair)
        for index, step in enumerate(playlist):
            print(f"{index:3d}  {step}")
        return 0

    injector = FaultInjector(config, runner=runner or default_runner(), sleep=sleep)
    try:
        injector.run()
    except StepFailed as e:
        print(f"[!] {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\n[!] Interrupted")
        return EXIT_INTERRUPTED
    return 0


def fault_injector_parser(prog: Optional[str] = None) -> ToolParser:
    parser = ToolParser(
        prog=prog,
        description="Loop through adversary test cases against a running validator. Ctrl-C to exit."
    )
    add_fault_injector_arguments(parser)
    return parser


def fault_injector_main(
    argv: Optional[List[str]] = None,
    runner: Optional[CommandRunner] = None,
    sleep: Callable[[float], None] = time.sleep
) -> int:
    parser = fault_injector_parser()
    args = parser.parse_args(argv)
    return run_fault_injector(args, parser, runner, sleep)


# ============================================================================
# Combined front end
# ============================================================================

def main(argv: Optional[List[str]] = None) -> int:
    parser = ToolParser(prog="dbgtools", description="Validator debug tools")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    finder = subparsers.add_parser("find-node", help="Find the cluster a node belongs to")
    add_cluster_finder_arguments(finder)
    finder.set_defaults(handler=run_cluster_finder)

    loop = subparsers.add_parser("fault-loop", help="Loop through fault-injection test cases")
    add_fault_injector_arguments(loop)
    loop.set_defaults(handler=run_fault_injector)

    args = parser.parse_args(argv)
    subparser = finder if args.command == "find-node" else loop
    return args.handler(args, subparser)


if __name__ == "__main__":
    sys.exit(main())
