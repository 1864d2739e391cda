"""Mounts, checksums, delegate execution and resource tracking."""
