"""Tron Facilitator — x402 exact-scheme payments settled as TRC-20 transfers."""

__version__ = "0.1.0"
