"""Scheduled publication service: lifecycle, workers and HTTP API for LinkedIn/X posts."""
__version__ = "0.1.0"
