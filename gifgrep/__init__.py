"""Decode GIFs into PNG frames, extract stills and contact sheets, and render GIF results for terminals."""

__version__ = "0.2.3"