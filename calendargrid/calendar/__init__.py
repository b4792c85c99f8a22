"""Recurrence parsing, occurrence generation and day placement primitives."""
