# frostmpc/__init__.py
"""Threshold Ed25519 (FROST) signing: signer nodes, coordinator, offline key tools."""
__version__ = "0.1.0"
