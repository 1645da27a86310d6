"""Client toolkit for Substrate-style chains: twox hashing, metadata model and hashing, constants, blocks and runtime updates."""

__version__ = "0.1.0"

__all__ = ["blocks", "client", "constants", "hashing", "registry", "twox"]