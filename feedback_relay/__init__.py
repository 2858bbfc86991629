"""Feedback relay: forwards feedback form submissions to an Apprise API endpoint."""

__version__ = "0.1.0"
