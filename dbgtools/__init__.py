"""
Validator Debug Tools

Command line helpers for poking at a validator cluster:
- cluster-finder: which public cluster is a node identity gossiping on?
- fault-injector: loop an adversary tool through a fixed fault playlist.
"""

__version__ = "1.0.0"
