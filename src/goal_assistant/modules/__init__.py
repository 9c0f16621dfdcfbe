"""Pluggable life-area modules and their registry."""
