"""Operational scripts for the $ave+ API."""
