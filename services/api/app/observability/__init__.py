"""Observability: Prometheus metrics, OpenTelemetry tracing, logging setup."""
