"""Two-player "20 Questions" relay server."""
