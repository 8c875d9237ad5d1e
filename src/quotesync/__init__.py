"""Local-first quote store with periodic sync against a remote server."""

__version__ = "1.0.0"
