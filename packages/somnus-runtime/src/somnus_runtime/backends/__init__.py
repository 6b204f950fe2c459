"""Concrete backends for the somnus runtime protocols."""
