"""Step observer hook and run telemetry."""
