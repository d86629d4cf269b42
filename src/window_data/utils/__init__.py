"""Shared helpers for window_data."""
