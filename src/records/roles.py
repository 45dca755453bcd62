"""
Role assignments, readable by admins.
"""

from shared.database import BaaSClient
from shared.models import UserRole


class RoleDirectory:
    def __init__(self, client: BaaSClient, table: str = "user_roles"):
        self.client = client
        self.table = table

    async def list_roles(self) -> list[UserRole]:
        rows = await self.client.select(self.table, order="created_at", descending=True)
        return [UserRole.model_validate(row) for row in rows]
