"""Shared utilities for Flux."""
