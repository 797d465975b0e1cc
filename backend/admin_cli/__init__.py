"""Typer command line client for the Phim Admin API."""
