"""
Local snapshot clients.

Serve the bundled JSON snapshot when the search backend is disabled or failing.
Return the SAME record shapes as the real HTTP clients.
"""

from .snapshot import LocalSnapshotClient, SnapshotCollection

__all__ = ["LocalSnapshotClient", "SnapshotCollection"]
