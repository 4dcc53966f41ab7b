"""Database models."""

from cqas.models.behavior import Behavior
from cqas.models.call import Call
from cqas.models.feedback import Feedback

__all__ = ["Behavior", "Call", "Feedback"]
