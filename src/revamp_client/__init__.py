"""Client for the revamp protocol and its shareholding pool."""

__version__ = "0.1.0"
