"""Distributed graph store with proposal-based consensus, peer management and scheduled cluster jobs."""

__version__ = "0.2.0"