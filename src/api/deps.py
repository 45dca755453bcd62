"""
Service container and request dependencies for the HTTP API.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, Request
from loguru import logger

from generator.cover_letter import CoverLetterWriter
from matcher.invoker import Analyzer, AnalysisInvoker
from matcher.llm_matcher import LLMMatcher
from quota.admission import QuotaGate
from quota.ledger import QuotaLedger, SupabaseQuotaLedger
from records.feedback import FeedbackStore
from records.letters import LetterStore
from records.roles import RoleDirectory
from shared.config import Settings
from shared.database import BaaSClient
from shared.errors import AuthenticationRequired, BaaSError, PermissionDenied
from shared.models import Principal, Role


@dataclass
class Services:
    """Long-lived collaborators shared by all requests."""

    settings: Settings
    baas: BaaSClient
    ledger: QuotaLedger
    gate: QuotaGate
    matcher: Analyzer
    invoker: AnalysisInvoker
    writer: CoverLetterWriter
    feedback: FeedbackStore
    letters: LetterStore
    roles: RoleDirectory

    @classmethod
    def build(
        cls,
        settings: Settings,
        baas: Optional[BaaSClient] = None,
        ledger: Optional[QuotaLedger] = None,
        matcher: Optional[Analyzer] = None,
        writer: Optional[CoverLetterWriter] = None,
    ) -> "Services":
        """Wire the production services; any collaborator may be replaced."""
        baas = baas or BaaSClient(settings)
        ledger = ledger or SupabaseQuotaLedger(baas, table=settings.quota_table)
        matcher = matcher or LLMMatcher(settings)
        gate = QuotaGate.from_settings(ledger, settings)
        return cls(
            settings=settings,
            baas=baas,
            ledger=ledger,
            gate=gate,
            matcher=matcher,
            invoker=AnalysisInvoker(gate, matcher, ledger),
            writer=writer or CoverLetterWriter(settings),
            feedback=FeedbackStore(baas),
            letters=LetterStore(baas),
            roles=RoleDirectory(baas),
        )


def get_services(request: Request) -> Services:
    return request.app.state.services


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Extract the token from an ``Authorization: Bearer`` header."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def resolve_principal(services: Services, token: str) -> Principal:
    """Verify ``token`` and look up the user's role on every call."""
    user = await services.baas.get_user(token)
    user_id = user["id"]

    try:
        is_admin = await services.baas.has_role(user_id, Role.ADMIN.value)
    except BaaSError as e:
        logger.warning(f"Role lookup failed for {user_id}, treating as standard: {e}")
        is_admin = False

    return Principal(
        id=user_id,
        role=Role.ADMIN if is_admin else Role.STANDARD,
        email=user.get("email"),
        access_token=token,
    )


async def get_principal(
    authorization: Optional[str] = Header(default=None),
    services: Services = Depends(get_services),
) -> Principal:
    token = bearer_token(authorization)
    if token is None:
        raise AuthenticationRequired()
    return await resolve_principal(services, token)


async def get_optional_principal(
    authorization: Optional[str] = Header(default=None),
    services: Services = Depends(get_services),
) -> Optional[Principal]:
    token = bearer_token(authorization)
    if token is None:
        return None
    try:
        return await resolve_principal(services, token)
    except AuthenticationRequired:
        return None


async def require_admin(principal: Principal = Depends(get_principal)) -> Principal:
    if not principal.is_admin:
        raise PermissionDenied()
    return principal
