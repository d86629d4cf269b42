"""Hydra configs shipped with window_data."""
