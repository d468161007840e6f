"""Structured logging setup and per-task context."""
