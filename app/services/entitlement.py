"""Who may generate descriptions and who may change a place."""
import logging
from typing import Optional

from app.errors import ErrorCode, ApplicationError, MissingServiceCredential, PremiumRequired
from app.models.auth import Identity, Profile
from app.models.places import PlaceRecord
from app.services.place_store import StoreError

logger = logging.getLogger(__name__)

ENTITLED_ROLES = ("admin", "premium")


def is_admin(profile: Optional[Profile]) -> bool:
    if profile is None:
        return False
    return bool(profile.is_admin) or profile.role == "admin"


def has_enrichment_entitlement(profile: Optional[Profile]) -> bool:
    """Admin flag, an admin/premium role, or an active subscription."""
    if profile is None:
        return False
    if profile.is_admin:
        return True
    if profile.role in ENTITLED_ROLES:
        return True
    return profile.subscription_status == "active"


def can_mutate(identity: Identity, place: PlaceRecord, profile: Optional[Profile]) -> bool:
    """Owners and admins may change a place."""
    return place.created_by == identity.id or is_admin(profile)


class EntitlementGuard:
    """
    Server-side premium check.

    The client hides premium features too; this check runs regardless so a
    crafted request cannot bypass it.
    """

    def __init__(self, store, service_role_configured: bool):
        self.store = store
        self.service_role_configured = service_role_configured

    async def require_entitlement(self, identity: Identity, action: str = "use this feature") -> Optional[Profile]:
        """
        Return the caller's profile if they are entitled.

        Raises:
            MissingServiceCredential: profile read failed and no service key is set
            ApplicationError: profile read failed with a service key set
            PremiumRequired: the caller has no premium access
        """
        try:
            profile = await self.store.get_profile(identity.id)
        except StoreError as exc:
            logger.error(f"Failed to load profile for access check: {exc}")
            if not self.service_role_configured:
                raise MissingServiceCredential() from exc
            raise ApplicationError(
                ErrorCode.ENTITLEMENT_CHECK_FAILED,
                "Failed to verify permissions.",
            ) from exc

        if not has_enrichment_entitlement(profile):
            raise PremiumRequired(f"Premium required to {action}.")
        return profile
