"""Feedback relay business logic.

Components:
    - negotiation: decodes JSON or form-encoded submissions
    - apprise_notifier: forwards submissions to the Apprise API
"""

__all__ = []
