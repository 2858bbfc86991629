"""API module for the feedback relay."""

from . import health
from . import feedback
