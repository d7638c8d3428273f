"""Quorum: identity resolution and voting ledger for a discussion forum."""

__version__ = "0.1.0"
