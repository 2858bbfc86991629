"""Request and notification schemas."""
