# Records service - feedback, saved letters and user roles stored in Supabase

from records.feedback import FeedbackStore
from records.letters import LetterStore
from records.roles import RoleDirectory

__all__ = [
    "FeedbackStore",
    "LetterStore",
    "RoleDirectory",
]
