"""Ingestion layer.

Normalizes raw scan-source output and builds immutable map nodes from it.
"""
