"""
Saved cover letters, scoped to their owner by the store's row-level access control.
"""

from loguru import logger

from shared.database import BaaSClient
from shared.errors import NotFound
from shared.models import Principal, SavedLetter, SavedLetterCreate


class LetterStore:
    """Rows of ``saved_letters``; every call runs with the principal's token."""

    def __init__(self, client: BaaSClient, table: str = "saved_letters"):
        self.client = client
        self.table = table

    async def list_for(self, principal: Principal) -> list[SavedLetter]:
        rows = await self.client.select(
            self.table,
            eq={"user_id": principal.id},
            order="created_at",
            descending=True,
            access_token=principal.access_token,
        )
        return [SavedLetter.model_validate(row) for row in rows]

    async def save(self, principal: Principal, letter: SavedLetterCreate) -> SavedLetter:
        row = {"user_id": principal.id, **letter.model_dump()}
        stored = await self.client.insert(self.table, row, access_token=principal.access_token)
        logger.info(f"Saved letter {stored.get('id')} for {principal.id}")
        return SavedLetter.model_validate(stored)

    async def delete(self, principal: Principal, letter_id: str) -> None:
        removed = await self.client.delete(
            self.table,
            {"id": letter_id, "user_id": principal.id},
            access_token=principal.access_token,
        )
        if removed == 0:
            raise NotFound(f"Letter {letter_id} not found")
        logger.info(f"Deleted letter {letter_id} for {principal.id}")
