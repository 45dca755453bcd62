"""
Quota Service - Main entry point.
Prints the rolling-window quota status of a user.
"""

import asyncio
from typing import Optional

import click

from shared.config import get_settings
from shared.database import BaaSClient
from shared.logging_config import setup_logging
from shared.models import Principal, QuotaStatus, Role

from .admission import QuotaGate
from .ledger import SupabaseQuotaLedger


async def fetch_status(user_id: str, admin: Optional[bool] = None) -> QuotaStatus:
    """Resolve the user's role (unless overridden) and read their quota."""
    settings = get_settings()
    client = BaaSClient(settings)
    try:
        if admin is None:
            admin = await client.has_role(user_id, Role.ADMIN.value)
        principal = Principal(id=user_id, role=Role.ADMIN if admin else Role.STANDARD)
        gate = QuotaGate.from_settings(
            SupabaseQuotaLedger(client, table=settings.quota_table), settings
        )
        return await gate.status(principal)
    finally:
        await client.close()


@click.command()
@click.argument("user_id")
@click.option(
    "--admin/--standard",
    default=None,
    help="Skip the role lookup and treat the user as admin or standard",
)
def main(user_id: str, admin: Optional[bool]):
    """Quota Status - Shows how many analyses a user has left."""
    setup_logging()

    status = asyncio.run(fetch_status(user_id, admin))
    if status.is_admin:
        click.echo(f"{user_id}: admin (no quota)")
        return

    click.echo(f"{user_id}: {status.used}/{status.limit} used, {status.remaining} remaining")
    if status.last_analysis_at:
        click.echo(f"Last analysis: {status.last_analysis_at.isoformat()}")
    if status.remaining == 0:
        click.echo(f"Resets in {status.hours_until_reset} hour(s)")


if __name__ == "__main__":
    main()
