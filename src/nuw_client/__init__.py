"""Client-side challenge solver for proof-of-work and network utility work."""

__version__ = "0.1.0"
