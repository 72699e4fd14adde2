"""Command line interface for the Torrentarr stream API."""
