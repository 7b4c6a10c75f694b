"""HTTP query server."""
