"""Provision a SaltStack master with its reserved IP, DNS record and peer token."""

__version__ = "0.1.0"
