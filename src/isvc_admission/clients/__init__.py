"""Cluster access for the admission server."""
