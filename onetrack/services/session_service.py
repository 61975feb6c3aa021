# onetrack/services/session_service.py
"""
Client session view: role resolution, role-gated navigation and menus.

Everything here is a UI convenience. Privileged operations never rely on
the role resolved by a SessionContext; they re-read it from the store
(see onetrack.core.auth).
"""
import logging
import uuid
from enum import Enum
from typing import Literal, NamedTuple

from sqlmodel import Session

from onetrack.core.realtime import ChangeEvent, ChangeFeed, Subscription
from onetrack.repositories.profile_repo import ProfileRepository

logger = logging.getLogger(__name__)

LOGIN_PATH = "/"


class AppRole(str, Enum):
    ADMIN = "admin"
    TECHNICIAN = "technician"
    CUSTOMER = "customer"

    @classmethod
    def parse(cls, value: str | None) -> "AppRole":
        """
        Strict conversion from a stored role string.

        Raises:
            ValueError: for unknown or empty roles (no silent default).
        """
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            raise ValueError(f"Unknown role: {value!r}")


class MenuEntry(NamedTuple):
    name: str
    href: str


MENUS: dict[AppRole, tuple[MenuEntry, ...]] = {
    AppRole.ADMIN: (
        MenuEntry("Dashboard", "/admin"),
        MenuEntry("Requests", "/admin/requests"),
        MenuEntry("New Job", "/admin/new-job"),
        MenuEntry("Master Data", "/admin/master-data"),
        MenuEntry("Reports", "/admin/reports"),
        MenuEntry("Profile", "/profile"),
    ),
    AppRole.TECHNICIAN: (
        MenuEntry("Dashboard", "/technician"),
        MenuEntry("Requests", "/technician/requests"),
        MenuEntry("Profile", "/profile"),
    ),
    AppRole.CUSTOMER: (
        MenuEntry("Dashboard", "/customer"),
        MenuEntry("New Request", "/customer/request"),
        MenuEntry("Profile", "/profile"),
    ),
}

HOME_PATHS: dict[AppRole, str] = {
    AppRole.ADMIN: "/admin",
    AppRole.TECHNICIAN: "/technician",
    AppRole.CUSTOMER: "/customer",
}

# Client routes and the roles allowed to open them. Longest prefix wins.
ROUTE_ROLES: dict[str, frozenset[AppRole]] = {
    "/admin": frozenset({AppRole.ADMIN}),
    "/technician": frozenset({AppRole.TECHNICIAN}),
    "/customer": frozenset({AppRole.CUSTOMER}),
    "/profile": frozenset(AppRole),
}


def menu_for(role: str | AppRole) -> tuple[MenuEntry, ...]:
    return MENUS[AppRole.parse(role) if isinstance(role, str) else role]


def home_path(role: str | AppRole) -> str:
    return HOME_PATHS[AppRole.parse(role) if isinstance(role, str) else role]


def allowed_roles_for(path: str) -> frozenset[AppRole]:
    """Roles allowed on a client path; empty for unknown paths."""
    normalized = "/" + path.strip().strip("/")
    best: str | None = None
    for prefix in ROUTE_ROLES:
        if normalized == prefix or normalized.startswith(prefix + "/"):
            if best is None or len(prefix) > len(best):
                best = prefix
    return ROUTE_ROLES[best] if best else frozenset()


SessionStatus = Literal["loading", "resolved"]


class SessionContext:
    """
    Explicit per-session state: identity + resolved role.

    Lifecycle:
      open(feed)     subscribe to profile changes
      resolve(db)    (re)read the role from profiles
      close()        unsubscribe

    A change to the caller's own profile row marks the context as
    loading again, so the next resolve() picks up the new role.
    """

    def __init__(
        self,
        user_id: uuid.UUID | None,
        email: str | None = None,
        profile_repo: ProfileRepository | None = None,
    ):
        self.user_id = user_id
        self.email = email
        self.role: AppRole | None = None
        self.status: SessionStatus = "loading"
        self.profile_repo = profile_repo or ProfileRepository()
        self._subscription: Subscription | None = None

    # ----- lifecycle -----

    def open(self, feed: ChangeFeed) -> "SessionContext":
        if self._subscription is None:
            self._subscription = feed.on_change("profiles", self._on_profile_change)
        return self

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    def __enter__(self) -> "SessionContext":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _on_profile_change(self, change: ChangeEvent) -> None:
        if self.user_id is not None and change.row_id == str(self.user_id):
            self.status = "loading"

    # ----- state -----

    @property
    def authenticated(self) -> bool:
        return self.user_id is not None

    def resolve(self, session: Session) -> "SessionContext":
        """
        Read the role of the current identity.

        Unknown or missing roles resolve to None (no menu, every guarded
        route redirects).
        """
        if self.user_id is None:
            self.role = None
            self.status = "resolved"
            return self

        profile = self.profile_repo.get_by_id(session, self.user_id)
        if profile is None:
            self.role = None
        else:
            try:
                self.role = AppRole.parse(profile.role)
            except ValueError:
                logger.warning("Profile %s has unknown role %r", self.user_id, profile.role)
                self.role = None
        self.status = "resolved"
        return self


class GuardDecision(NamedTuple):
    decision: Literal["loading", "allowed", "redirected"]
    redirect_to: str | None = None


def guard(context: SessionContext, allowed: frozenset[AppRole] | set[AppRole]) -> GuardDecision:
    """
    Route guard.

      - still resolving            -> loading (do not redirect yet)
      - no identity                -> redirected to login
      - role missing / not allowed -> redirected to login (fail closed)
      - otherwise                  -> allowed
    """
    if context.status == "loading":
        return GuardDecision("loading")
    if not context.authenticated:
        return GuardDecision("redirected", LOGIN_PATH)
    if context.role is None or context.role not in allowed:
        return GuardDecision("redirected", LOGIN_PATH)
    return GuardDecision("allowed")
