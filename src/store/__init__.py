"""Storage layer.

This package persists namespaced TTL records, chunked datasets, operation
sessions, and rendered reports under one data root.
"""
