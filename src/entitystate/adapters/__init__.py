"""Adapters connecting the core to storage and analyzer output."""
