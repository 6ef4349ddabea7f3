"""Account management platform core: stores, policy, tokens and real-time fan-out."""

__version__ = "1.0.0"
