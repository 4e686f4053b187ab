"""
Cluster Finder

Looks for a node identity on each public cluster by running a gossip spy
against that cluster's entrypoint. A spy that exits 0 saw the node.

Usage:
    cluster-finder <node_pubkey>

Exit codes:
    0 = Search finished (zero or more clusters reported)
    1 = Pubkey missing or solana-gossip not installed
"""

from dataclasses import dataclass
from typing import Callable, List, Sequence

from .errors import MissingDependencyError, UsageError

GOSSIP_BIN = "solana-gossip"

# Seconds the spy listens before giving up; enforced by solana-gossip itself
SPY_TIMEOUT_SECS = 60


@dataclass(frozen=True)
class ClusterEndpoint:
    """A public cluster and its bootstrap entrypoint."""
    name: str
    address: str

    def __str__(self) -> str:
        return f"{self.name} ({self.address})"


ENTRYPOINT_MAINNET_BETA = ClusterEndpoint("mainnet-beta", "entrypoint2.mainnet-beta.solana.com:8001")
ENTRYPOINT_TESTNET = ClusterEndpoint("testnet", "entrypoint2.testnet.solana.com:8001")
ENTRYPOINT_DEVNET = ClusterEndpoint("devnet", "entrypoint2.devnet.solana.com:8001")

# Probe order matters for output order
ENTRYPOINTS = (ENTRYPOINT_MAINNET_BETA, ENTRYPOINT_TESTNET, ENTRYPOINT_DEVNET)


def spy_command(node_pubkey: str, entrypoint: str, gossip_bin: str = GOSSIP_BIN) -> List[str]:
    """Build the gossip spy invocation for one entrypoint."""
    return [
        gossip_bin, "spy",
        "--entrypoint", entrypoint,
        "--pubkey", node_pubkey,
        "--timeout", str(SPY_TIMEOUT_SECS),
    ]


def search_cluster(runner, node_pubkey: str, endpoint: ClusterEndpoint,
                   gossip_bin: str = GOSSIP_BIN) -> bool:
    """Return True if the spy found the node via this endpoint."""
    if not node_pubkey:
        raise UsageError("search_cluster requires node_pubkey arg")
    returncode = runner.run(spy_command(node_pubkey, endpoint.address, gossip_bin), quiet=True)
    return returncode == 0


def find_clusters(
    node_pubkey: str,
    runner,
    gossip_bin: str = GOSSIP_BIN,
    endpoints: Sequence[ClusterEndpoint] = ENTRYPOINTS,
    out: Callable[[str], None] = print
) -> List[ClusterEndpoint]:
    """
    Probe every endpoint in order and report where the node was seen.

    A failed or timed-out spy only means "not found there"; it never aborts
    the search.

    Args:
        node_pubkey: Node identity to look for
        runner: Object with which() and run(argv, quiet) (see CommandRunner)
        gossip_bin: Name or path of the gossip tool
        endpoints: Clusters to probe
        out: Sink for the "found:" lines

    Returns:
        Endpoints the node was found on, in probe order

    Raises:
        UsageError: node_pubkey is empty
        MissingDependencyError: gossip_bin is not on PATH
    """
    if not node_pubkey:
        raise UsageError("target node pubkey required")

    if runner.which(gossip_bin) is None:
        raise MissingDependencyError(gossip_bin)

    found = []
    for endpoint in endpoints:
        if search_cluster(runner, node_pubkey, endpoint, gossip_bin):
            out(f"found: {endpoint}")
            found.append(endpoint)
    return found
