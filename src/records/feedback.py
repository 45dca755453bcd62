"""
User feedback: anyone may submit, admins review.
"""

from typing import Optional

from loguru import logger

from shared.database import BaaSClient
from shared.errors import NotFound
from shared.models import Feedback, FeedbackStatus, FeedbackSubmission, Principal


class FeedbackStore:
    """Feedback rows in the ``feedback`` table."""

    def __init__(self, client: BaaSClient, table: str = "feedback"):
        self.client = client
        self.table = table

    async def submit(
        self,
        submission: FeedbackSubmission,
        principal: Optional[Principal] = None,
    ) -> Feedback:
        row = {
            "message": submission.message,
            "email": submission.email,
            "user_id": principal.id if principal else None,
            "status": FeedbackStatus.NEW.value,
        }
        stored = await self.client.insert(self.table, row)
        logger.info(f"Feedback {stored.get('id')} submitted")
        return Feedback.model_validate(stored)

    async def list_all(self) -> list[Feedback]:
        rows = await self.client.select(self.table, order="created_at", descending=True)
        return [Feedback.model_validate(row) for row in rows]

    async def update_status(self, feedback_id: str, status: FeedbackStatus) -> Feedback:
        rows = await self.client.update(
            self.table, {"id": feedback_id}, {"status": status.value}
        )
        if not rows:
            raise NotFound(f"Feedback {feedback_id} not found")
        logger.info(f"Feedback {feedback_id} marked {status.value}")
        return Feedback.model_validate(rows[0])
