"""Stacked pull requests for Jujutsu repositories."""
