"""Ingestion pipeline, reconnect policy and connection supervision."""
