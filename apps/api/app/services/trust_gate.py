"""Trust gate for public form endpoints: capability key + origin allowlist.

Every public endpoint runs the same decision before touching form logic:

1. Resolve the org by slug (unknown → 404).
2. Check the capability key header against the org's public key (→ 403).
3. Empty allowlist means origin enforcement is off.
4. A valid staff bearer token for the same org bypasses origin checks
   (preview from the staff UI).
5. Otherwise Origin (or the origin of Referer) must exactly match an entry.
6. With neither header: reads pass, writes need the operator override.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from sqlalchemy.orm import Session

from app.core.cache import TTLCache
from app.core.config import settings
from app.core.security import extract_bearer_token, verify_public_key
from app.db.models import Organization
from app.schemas.auth import UserSession
from app.services import org_service
from app.services.session_service import try_resolve_session

logger = logging.getLogger(__name__)

SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


@dataclass(frozen=True)
class PublicRequest:
    """Request attributes the gate looks at (no framework types)."""

    org_slug: str
    method: str
    public_key: str | None = None
    origin: str | None = None
    referer: str | None = None
    authorization: str | None = None


@dataclass
class TrustDecision:
    allowed: bool
    status_code: int
    reason: str
    org: Organization | None = None
    staff_preview: bool = False

    @classmethod
    def allow(cls, org: Organization, reason: str, *, staff_preview: bool = False) -> "TrustDecision":
        return cls(True, 200, reason, org=org, staff_preview=staff_preview)

    @classmethod
    def deny(cls, status_code: int, reason: str, org: Organization | None = None) -> "TrustDecision":
        return cls(False, status_code, reason, org=org)


SessionResolver = Callable[[Session, str | None], UserSession | None]


class TrustGate:
    """Decides whether a public request may act on an org's forms."""

    def __init__(
        self,
        origin_cache: TTLCache[frozenset[str]],
        *,
        allow_no_origin_writes: bool = False,
        session_resolver: SessionResolver = try_resolve_session,
    ) -> None:
        self.origin_cache = origin_cache
        self.allow_no_origin_writes = allow_no_origin_writes
        self._resolve_session = session_resolver

    def allowed_origins(self, db: Session, org: Organization) -> frozenset[str]:
        return self.origin_cache.get_or_load(
            org.id, lambda: org_service.get_allowed_origin_set(db, org.id)
        )

    def invalidate(self, org_id) -> None:
        self.origin_cache.invalidate(org_id)

    def evaluate(self, db: Session, request: PublicRequest) -> TrustDecision:
        org = org_service.get_org_by_slug(db, request.org_slug)
        if org is None:
            return TrustDecision.deny(404, "Organization not found")

        if not verify_public_key(request.public_key, org.public_key):
            return TrustDecision.deny(403, "Forbidden: invalid public key", org)

        allowed = self.allowed_origins(db, org)
        if not allowed:
            return TrustDecision.allow(org, "allowlist empty")

        token = extract_bearer_token(request.authorization)
        if token:
            session = self._resolve_session(db, token)
            if session is not None and session.org_id == org.id:
                return TrustDecision.allow(org, "staff preview", staff_preview=True)

        origin = (request.origin or "").strip() or None
        referer = (request.referer or "").strip() or None
        if origin is None and referer is None:
            if request.method.upper() in SAFE_METHODS or self.allow_no_origin_writes:
                return TrustDecision.allow(org, "no origin headers")
            return TrustDecision.deny(403, "Forbidden: origin required", org)

        candidate = origin or org_service.origin_from_referer(referer)
        if candidate is not None and candidate in allowed:
            return TrustDecision.allow(org, "origin allowed")

        logger.info(
            "Public request from disallowed origin",
            extra={"org_id": str(org.id), "origin": candidate},
        )
        return TrustDecision.deny(403, "Forbidden: origin not allowed", org)


_trust_gate = TrustGate(
    TTLCache(settings.ALLOWED_ORIGINS_CACHE_TTL_SECONDS),
    allow_no_origin_writes=settings.PUBLIC_FORMS_ALLOW_NO_ORIGIN_WRITES,
)


def get_trust_gate() -> TrustGate:
    """FastAPI dependency; override in tests to control cache time."""
    return _trust_gate
