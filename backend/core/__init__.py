"""Core backend infrastructure for the match relay.

This package contains configuration, logging, the error taxonomy, and the
relay context (shared HTTP client, catalog and session state) used by the
FastAPI application entrypoint.
"""
