"""
Profile reconciliation for coachauth.

Every identity must have a row in the profiles table. ``reconcile`` reads it,
creating a minimal row when it is missing or when the read is rejected by a
row-level-security policy (the self-referential "infinite recursion" case).
The upsert makes the layer self-healing instead of surfacing a 403 to the UI.
"""

import logging
from typing import TYPE_CHECKING, Awaitable, Callable, List, Optional, Tuple

from ..errors import ErrorKind, classify_error, error_message, wrap_error
from .models import Identity, Profile

if TYPE_CHECKING:
    from ..client import CoachAuth

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = frozenset({"full_name", "username", "avatar_url"})

ConfirmStrategy = Tuple[str, Callable[[str, Optional[str]], Awaitable[bool]]]


def _escape_like(value: str) -> str:
    """Match ``value`` literally in an ILIKE pattern."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class ProfileManager:
    """
    Reads and writes profile rows.

    This is the only writer of the profiles table inside coachauth. The
    session store caches what ``reconcile`` returns; code that edits a
    profile through ``update`` must call ``CoachAuth.refresh_profile()``
    afterwards because the cache does not observe out-of-band writes.
    """

    def __init__(self, coach: "CoachAuth") -> None:
        """
        Initialize ProfileManager.

        Args:
            coach: Main CoachAuth client instance
        """
        self.coach = coach
        self.client = coach.client
        self.table_name = coach.config.profiles_table

    def _table(self):
        return self.client.table(self.table_name)

    def _now(self) -> str:
        return self.coach.clock.now().isoformat()

    async def reconcile(self, identity: Identity) -> Optional[Profile]:
        """
        Return the profile for ``identity``, creating it if needed.

        Never raises. Permission and not-found failures self-heal through an
        upsert; anything else returns None and is retried naturally on the
        next identity event.

        Args:
            identity: Current authenticated identity

        Returns:
            Profile instance, or None if the profile is unavailable
        """
        try:
            result = await self._table().select("*").eq("id", identity.id).limit(1).execute()
        except Exception as exc:
            kind = classify_error(exc)
            if kind is ErrorKind.PERMISSION:
                logger.warning(
                    "Profile read for %s rejected by policy (%s); upserting",
                    identity.id,
                    error_message(exc),
                )
                return await self.upsert_minimal(identity)
            if kind is ErrorKind.NOT_FOUND:
                return await self.upsert_minimal(identity)
            logger.error("Error fetching profile for %s: %s", identity.id, error_message(exc))
            return None

        if not result.data:
            logger.info("No profile for %s, creating one", identity.id)
            return await self.upsert_minimal(identity)

        return Profile.from_row(result.data[0])

    async def upsert_minimal(self, identity: Identity) -> Optional[Profile]:
        """
        Upsert the smallest valid profile row for ``identity``.

        Returns:
            Profile built from the upserted row, or None on failure
        """
        row = {
            "id": identity.id,
            "email": identity.email,
            "email_confirmed": identity.email_confirmed,
            "updated_at": self._now(),
        }
        try:
            result = await self._table().upsert(row).execute()
        except Exception as exc:
            logger.error("Error upserting profile for %s: %s", identity.id, error_message(exc))
            return None

        if not result.data:
            logger.error("Profile upsert for %s returned no row", identity.id)
            return None
        return Profile.from_row(result.data[0])

    async def get(self, user_id: str) -> Optional[Profile]:
        """
        Get a profile by user id.

        Raises:
            CoachAuthError: If the query fails
        """
        try:
            result = await self._table().select("*").eq("id", user_id).execute()
        except Exception as exc:
            raise wrap_error(exc) from exc
        if not result.data:
            return None
        return Profile.from_row(result.data[0])

    async def get_by_email(self, email: str) -> Optional[Profile]:
        """
        Get a profile by email address.

        Raises:
            CoachAuthError: If the query fails
        """
        try:
            result = await self._table().select("*").eq("email", email).execute()
        except Exception as exc:
            raise wrap_error(exc) from exc
        if not result.data:
            return None
        return Profile.from_row(result.data[0])

    async def exists_by_email(self, email: str) -> bool:
        """True if a profile already uses ``email``. Lookup errors count as False."""
        try:
            result = await self._table().select("id").eq("email", email).execute()
        except Exception as exc:
            logger.error("Error checking existing user %s: %s", email, error_message(exc))
            return False
        return bool(result.data)

    async def create_for_signup(
        self, user_id: str, email: str, full_name: Optional[str]
    ) -> Optional[Profile]:
        """Create the profile row right after a successful signup."""
        row = {
            "id": user_id,
            "email": email,
            "full_name": full_name,
            "email_confirmed": False,
            "updated_at": self._now(),
        }
        try:
            result = await self._table().upsert(row).execute()
        except Exception as exc:
            logger.error("Error creating user profile for %s: %s", email, error_message(exc))
            return None
        if not result.data:
            return None
        return Profile.from_row(result.data[0])

    async def update(self, user_id: str, **fields) -> Optional[Profile]:
        """
        Update editable account fields.

        Args:
            user_id: Profile id
            **fields: Any of full_name, username, avatar_url

        Returns:
            Updated Profile, or None if no row matched

        Raises:
            ValueError: If a field is not editable
            CoachAuthError: If the update fails

        Example:
            ```python
            await coach.profiles.update(user.id, full_name="Jane Doe")
            await coach.refresh_profile()
            ```
        """
        unknown = set(fields) - EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields not editable: {', '.join(sorted(unknown))}")

        data = dict(fields)
        data["updated_at"] = self._now()
        try:
            result = await self._table().update(data).eq("id", user_id).execute()
        except Exception as exc:
            raise wrap_error(exc) from exc
        if not result.data:
            return None
        return Profile.from_row(result.data[0])

    async def record_login(self, user_id: str) -> None:
        """Bump login_count and last_active_at. Best-effort."""
        try:
            result = await self._table().select("login_count").eq("id", user_id).execute()
            count = (result.data[0].get("login_count") or 0) if result.data else 0
            await self._table().update(
                {"login_count": count + 1, "last_active_at": self._now()}
            ).eq("id", user_id).execute()
        except Exception as exc:
            logger.warning("Could not record login for %s: %s", user_id, error_message(exc))

    # Marking an email as confirmed

    def _confirm_payload(self) -> dict:
        now = self._now()
        return {"email_confirmed": True, "email_verified_at": now, "updated_at": now}

    async def _confirm_by_id(self, email: str, user_id: Optional[str]) -> bool:
        if not user_id:
            return False
        result = await self._table().update(self._confirm_payload()).eq("id", user_id).execute()
        return bool(result.data)

    async def _confirm_by_email(self, email: str, user_id: Optional[str]) -> bool:
        result = await self._table().update(self._confirm_payload()).eq("email", email).execute()
        return bool(result.data)

    async def _confirm_lookup_then_update(self, email: str, user_id: Optional[str]) -> bool:
        lookup = await self._table().select("id").ilike("email", _escape_like(email)).execute()
        if not lookup.data:
            return False
        return await self._confirm_by_id(email, lookup.data[0]["id"])

    def confirm_strategies(self) -> List[ConfirmStrategy]:
        return [
            ("by_id", self._confirm_by_id),
            ("by_email", self._confirm_by_email),
            ("lookup_then_update", self._confirm_lookup_then_update),
        ]

    async def mark_confirmed(self, email: str, user_id: Optional[str] = None) -> bool:
        """
        Set ``email_confirmed`` on the profile owning ``email``.

        One logical update, tried through several strategies in order
        because RLS policies reject some of them for some callers. Stops at
        the first strategy that updates a row.

        Returns:
            True if a profile row was updated
        """
        confirmed = False
        for name, strategy in self.confirm_strategies():
            try:
                if await strategy(email, user_id):
                    logger.info("Marked %s confirmed via %s", email, name)
                    confirmed = True
                    break
                logger.debug("Confirm strategy %s matched no row for %s", name, email)
            except Exception as exc:
                logger.warning(
                    "Confirm strategy %s failed for %s: %s", name, email, error_message(exc)
                )

        # Needs an elevated role; failure is expected for ordinary sessions
        try:
            await self.client.rpc("confirm_user_email", {"user_email": email}).execute()
        except Exception as exc:
            logger.debug("confirm_user_email rpc skipped for %s: %s", email, error_message(exc))

        if not confirmed:
            logger.error("Could not mark %s as confirmed", email)
        return confirmed
