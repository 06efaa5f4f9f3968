"""Diaper price aggregation backend."""
