"""
Torrent resolution core for Torrentarr.

This package bundles the bencode codec used to derive info-hashes, the
episode matching helpers for series torrents and the shared error taxonomy.
"""

__all__ = ["bencode", "episodes", "errors"]
