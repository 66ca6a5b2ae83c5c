"""Pointsman adapters - implementations of pointsman.protocols."""
