"""Helpers for the command line."""
