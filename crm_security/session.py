"""
Session Controller
==================

Orchestrates login, session restore and logout over the security services,
and exposes the authenticated identity and permission predicate.

Login pipeline:
    monitor email -> sanitize -> validate shape -> rate-limit gate
    -> simulated network delay -> identity match -> issue token
    -> persist token and profile -> AUTHENTICATED

A generation counter guards against stale logins: logout and every new
login bump it, and a login only applies its result if its generation is
still current when the delay resolves.

Author: jetgause
Created: 2025-12-12
Version: 1.0.0
"""

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, FrozenSet, List, Optional, Tuple

from crm_security.config import SecurityConfig
from crm_security.exceptions import AuthenticationError, ValidationError
from crm_security.identity import IdentityCatalog
from crm_security.models import Claims, TokenType, UserProfile, UserRole
from crm_security.monitor import SecurityMonitor
from crm_security.rate_limiter import RateLimiter
from crm_security.sanitizer import CONTROL_CHARS, MAX_EMAIL_LENGTH, Sanitizer
from crm_security.storage import SecureStore
from crm_security.tokens import TokenService
from crm_security.validation import LoginData, validate_data

logger = logging.getLogger(__name__)

AUTH_TOKEN_KEY = "authToken"
USER_KEY = "user"

RATE_LIMITED_MESSAGE = "Too many login attempts. Please try again later."
INVALID_CREDENTIALS_MESSAGE = "Invalid email or password"


class SessionState(str, Enum):
    """Session lifecycle states"""
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"


# Admin is granted every permission regardless of this table
ROLE_PERMISSIONS = {
    UserRole.ADMIN: frozenset({
        'admin', 'manage_users', 'view_dashboard', 'manage_leads',
        'manage_tasks', 'manage_calendar', 'settings',
    }),
    UserRole.MANAGER: frozenset({
        'view_dashboard', 'manage_leads', 'manage_tasks', 'manage_calendar',
        'view_reports',
    }),
    UserRole.SALESPERSON: frozenset({
        'view_dashboard', 'view_leads', 'manage_own_leads', 'view_tasks',
        'manage_own_tasks', 'view_calendar', 'manage_own_calendar',
    }),
}

SessionListener = Callable[[SessionState, Optional[UserProfile]], None]


class SessionController:
    """Login/restore/logout state machine"""

    def __init__(
        self,
        config: SecurityConfig,
        store: SecureStore,
        tokens: TokenService,
        monitor: SecurityMonitor,
        identities: IdentityCatalog,
        rate_limiter: RateLimiter,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None
    ):
        """
        Args:
            config: Security configuration (login delay)
            store: Secure storage for the token and profile
            tokens: Token issuance/verification
            monitor: Security monitor (input checks, rate-limit gate)
            identities: Known identities
            rate_limiter: Limiter reset after a successful login
            sleep: Awaitable used for the simulated network delay
        """
        self.config = config
        self.store = store
        self.tokens = tokens
        self.monitor = monitor
        self.identities = identities
        self.rate_limiter = rate_limiter
        self._sleep = sleep or asyncio.sleep

        self._state = SessionState.UNAUTHENTICATED
        self._user: Optional[UserProfile] = None
        self._claims: Optional[Claims] = None
        self._settled: Tuple[SessionState, Optional[UserProfile]] = (self._state, None)
        self._loading = False
        self._generation = 0
        self._listeners: List[SessionListener] = []

    # ------------------------------------------------------------------
    # Observables
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_authenticated(self) -> bool:
        return self._state == SessionState.AUTHENTICATED

    @property
    def current_user(self) -> Optional[UserProfile]:
        return self._user

    @property
    def claims(self) -> Optional[Claims]:
        return self._claims

    @property
    def is_loading(self) -> bool:
        return self._loading

    @property
    def permissions(self) -> FrozenSet[str]:
        if self._user is None or not self.is_authenticated:
            return frozenset()
        return ROLE_PERMISSIONS.get(self._user.role, frozenset())

    def add_listener(self, callback: SessionListener) -> Callable[[], None]:
        """
        Subscribe to state changes.

        Returns:
            A function that removes the listener
        """
        self._listeners.append(callback)

        def unsubscribe():
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _transition(self, state: SessionState, user: Optional[UserProfile]):
        changed = state != self._state or user != self._user
        self._state = state
        if state != SessionState.AUTHENTICATING:
            self._settled = (state, user)
        self._user = user
        if not changed:
            return
        logger.debug(f"Session state -> {state.value}")
        for listener in list(self._listeners):
            try:
                listener(state, user)
            except Exception as e:
                logger.error(f"Session listener failed: {type(e).__name__}: {e}")

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def login(self, email: str, password: str) -> Optional[UserProfile]:
        """
        Authenticate against the identity catalog.

        Args:
            email: Raw email input
            password: Raw password input

        Returns:
            The authenticated profile, or None if the login was superseded
            by a logout or a newer login while it was in flight

        Raises:
            ValidationError: if the credentials are malformed
            AuthenticationError: if throttled or the credentials do not match
        """
        # The password is never passed to monitoring or logs
        self.monitor.monitor_input(email, "login.email")

        clean_email = Sanitizer.sanitize(email, max_length=MAX_EMAIL_LENGTH)
        clean_password = CONTROL_CHARS.sub('', password or "")

        result = validate_data(LoginData, {"email": clean_email, "password": clean_password})
        if not result.success:
            raise ValidationError("Invalid login data", errors=result.errors)

        login_email = str(result.data.email).lower()

        if not self.monitor.monitor_rate_limit(login_email, "login"):
            raise AuthenticationError(RATE_LIMITED_MESSAGE, rate_limited=True)

        self._generation += 1
        generation = self._generation
        self._loading = True
        self._transition(SessionState.AUTHENTICATING, self._settled[1])

        completed = False
        try:
            await self._sleep(self.config.login_delay_seconds)

            if generation != self._generation:
                logger.info("Discarding stale login result")
                return None

            profile = self.identities.authenticate(login_email, clean_password)
            if profile is None:
                logger.info("Login failed: invalid credentials")
                raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE)

            token = self.tokens.generate_token({
                "subject_id": profile.id,
                "email": profile.email,
                "role": profile.role,
            })
            self.store.set_item(AUTH_TOKEN_KEY, token.encoded)
            self.store.set_item(USER_KEY, profile)
            self.rate_limiter.reset(login_email)

            self._claims = self.tokens.verify_token(token)
            self._transition(SessionState.AUTHENTICATED, profile)
            logger.info(f"User {profile.id} logged in ({profile.role.value})")
            completed = True
            return profile
        finally:
            # Any exit other than success falls back to the last settled state
            if generation == self._generation:
                self._loading = False
                if not completed:
                    self._transition(*self._settled)

    def restore(self) -> Optional[UserProfile]:
        """
        Resume a persisted session on startup.

        A stored token must verify as an access token and its subject must
        match the stored profile; anything else purges storage and leaves
        the session unauthenticated.

        Returns:
            The restored profile, or None
        """
        token = self.store.get_item(AUTH_TOKEN_KEY)
        profile = self.store.get_item(USER_KEY, model=UserProfile)

        claims = self.tokens.verify_token(token) if isinstance(token, str) else None
        if claims is not None and claims.token_type != TokenType.ACCESS:
            claims = None
        if claims is not None and profile is not None and claims.subject_id == profile.id:
            self._claims = claims
            self._loading = False
            self._transition(SessionState.AUTHENTICATED, profile)
            logger.info(f"Session restored for user {profile.id}")
            return profile

        self._purge()
        if token is not None:
            self.monitor.monitor_invalid_token("stored session token failed verification")
        self._claims = None
        self._loading = False
        self._transition(SessionState.UNAUTHENTICATED, None)
        return None

    def logout(self):
        """End the session. Safe to call repeatedly; cancels in-flight logins."""
        self._generation += 1
        self._purge()
        self._claims = None
        self._loading = False
        self._transition(SessionState.UNAUTHENTICATED, None)

    def _purge(self):
        self.store.remove_item(AUTH_TOKEN_KEY)
        self.store.remove_item(USER_KEY)

    # ------------------------------------------------------------------
    # Authorization
    # ------------------------------------------------------------------

    def has_permission(self, permission: str) -> bool:
        """Admin implies every permission; other roles consult ROLE_PERMISSIONS."""
        if self._user is None or not self.is_authenticated:
            return False
        if self._user.role == UserRole.ADMIN:
            return True
        return permission in ROLE_PERMISSIONS.get(self._user.role, frozenset())


__all__ = [
    'SessionState',
    'SessionController',
    'ROLE_PERMISSIONS',
    'AUTH_TOKEN_KEY',
    'USER_KEY',
]
