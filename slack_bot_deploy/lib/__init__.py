"""Helpers shared by the deploy commands."""
