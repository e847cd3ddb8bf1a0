"""Displays for a running workout (console and Qt window)."""
