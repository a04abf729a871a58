"""Stateful managers."""
