"""Logging, console output and time helpers."""
