"""Privileged shell tasks (adu-shell)."""
