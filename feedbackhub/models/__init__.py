from .application import Application
from .feedback import Feedback, FeedbackStatus

__all__ = ["Application", "Feedback", "FeedbackStatus"]
