"""Fetch coordination: strategies, timing, configuration and errors."""
