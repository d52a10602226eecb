from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Any, Callable, Mapping

from sewcraft.application.dto.auth import AuthChangeEvent, AuthEvent, AuthResult, AuthStatus
from sewcraft.application.ports.identity_service_port import (
    IdentityServicePort,
    RemoteAuthError,
    RemoteServiceError,
)
from sewcraft.application.use_cases.auth_common import normalize_email, translate_remote_error
from sewcraft.application.use_cases.update_profile import ProfileUpdater
from sewcraft.domain.entities.identity import Identity, RemoteSession, Session
from sewcraft.domain.exceptions import (
    AccountBlockedError,
    DomainError,
    InvalidInputError,
    NotFoundError,
    ServiceUnavailableError,
    SessionSupersededError,
    UnauthorizedError,
    WeakPasswordError,
)
from sewcraft.domain.services.password_policy import validate_password


logger = logging.getLogger(__name__)


SessionChangeHandler = Callable[[Session | None], None]


class SessionStore:
    """Owns the current ``Session`` for one client.

    The auth-change stream of the identity service is the source of truth:
    every event replaces the session wholesale and is forwarded to listeners
    in arrival order. ``_signout_generation`` increases on every sign-out so
    that results of calls started before it can be recognised as stale.
    """

    def __init__(
        self,
        *,
        identity_service: IdentityServicePort,
        profile_updater: ProfileUpdater | None = None,
        health_check_max_attempts: int = 5,
        health_check_retry_delay_seconds: float = 1.0,
    ):
        self._identity_service = identity_service
        self._profile_updater = profile_updater or ProfileUpdater(identity_service=identity_service)
        self._health_check_max_attempts = health_check_max_attempts
        self._health_check_retry_delay_seconds = health_check_retry_delay_seconds

        self._session: Session | None = None
        self._initializing = True
        self._pending_operations = 0
        self._signout_generation = 0
        self._service_available: bool | None = None
        self._listeners: list[SessionChangeHandler] = []
        self._unsubscribe: Callable[[], None] | None = None
        self._resolutions: dict[str, asyncio.Task] = {}

    @property
    def loading(self) -> bool:
        return self._initializing or self._pending_operations > 0

    @property
    def service_available(self) -> bool | None:
        return self._service_available

    @property
    def can_submit(self) -> bool:
        return self._service_available is not False

    async def start(self) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = self._identity_service.subscribe(self._handle_auth_change)

        self._initializing = True
        try:
            try:
                remote = await self._identity_service.get_session()
            except (RemoteAuthError, RemoteServiceError) as exc:
                logger.warning("session_store: initial_session_failed error=%s", exc)
                return

            if remote is None or self._session is not None:
                return
            self._handle_auth_change(AuthChangeEvent(event=AuthEvent.INITIAL_SESSION, session=remote))
            try:
                await self._await_identity(remote)
            except DomainError as exc:
                logger.warning(
                    "session_store: initial_profile_failed user_id=%s error=%s",
                    remote.user_id,
                    exc,
                )
        finally:
            self._initializing = False

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        for task in list(self._resolutions.values()):
            task.cancel()
        self._resolutions.clear()

    async def __aenter__(self) -> SessionStore:
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()

    def get_session(self) -> Session | None:
        return self._session

    def on_session_change(self, handler: SessionChangeHandler) -> Callable[[], None]:
        self._listeners.append(handler)

        def _unsubscribe() -> None:
            if handler in self._listeners:
                self._listeners.remove(handler)

        return _unsubscribe

    async def check_health(self) -> bool:
        attempts = max(1, self._health_check_max_attempts)
        delay = self._health_check_retry_delay_seconds

        for attempt in range(1, attempts + 1):
            try:
                healthy = await self._identity_service.health_check()
            except RemoteAuthError as exc:
                if "invalid api key" in str(exc).lower():
                    logger.error("session_store: health_check_failed invalid_api_key")
                    break
                logger.warning("session_store: health_check_error attempt=%s/%s error=%s", attempt, attempts, exc)
                healthy = False
            except RemoteServiceError as exc:
                logger.warning("session_store: health_check_error attempt=%s/%s error=%s", attempt, attempts, exc)
                healthy = False

            if healthy:
                self._service_available = True
                return True
            if attempt == attempts:
                break
            logger.warning(
                "session_store: health_check_retry attempt=%s/%s delay=%s",
                attempt,
                attempts,
                delay,
            )
            await asyncio.sleep(delay)
            delay *= 2

        self._service_available = False
        return False

    async def login(self, email: str, password: str) -> AuthResult:
        generation = self._signout_generation
        self._pending_operations += 1
        try:
            if not await self.check_health():
                return AuthResult.failure(ServiceUnavailableError("Identity service is unavailable."))

            try:
                remote = await self._identity_service.sign_in_with_password(
                    email=normalize_email(email),
                    password=password,
                )
            except (RemoteAuthError, RemoteServiceError) as exc:
                error = translate_remote_error(exc)
                logger.info("session_store: login_failed reason=%s", error.code.value)
                return AuthResult.failure(error)

            return await self._complete_sign_in(remote, generation)
        finally:
            self._pending_operations -= 1

    async def register(self, name: str, email: str, password: str) -> AuthResult:
        name = name.strip()
        email = normalize_email(email)
        if not name:
            return AuthResult.failure(InvalidInputError("name is required."))
        if not email:
            return AuthResult.failure(InvalidInputError("email is required."))
        try:
            validate_password(password)
        except WeakPasswordError as exc:
            return AuthResult.failure(exc)

        generation = self._signout_generation
        self._pending_operations += 1
        try:
            if not await self.check_health():
                return AuthResult.failure(ServiceUnavailableError("Identity service is unavailable."))

            try:
                output = await self._identity_service.sign_up(
                    email=email,
                    password=password,
                    metadata={"name": name, "role": "USER"},
                )
            except (RemoteAuthError, RemoteServiceError) as exc:
                error = translate_remote_error(exc)
                logger.info("session_store: register_failed reason=%s", error.code.value)
                return AuthResult.failure(error)

            if output.session is None:
                logger.info("session_store: register_pending_confirmation user_id=%s", output.user_id)
                return AuthResult(status=AuthStatus.PENDING_CONFIRMATION)

            return await self._complete_sign_in(output.session, generation)
        finally:
            self._pending_operations -= 1

    async def logout(self) -> None:
        session = self._session
        if session is None:
            self._signout_generation += 1
            return

        # Local state is cleared before the remote call.
        self._clear_local()
        try:
            await self._identity_service.sign_out(access_token=session.access_token)
        except (RemoteAuthError, RemoteServiceError) as exc:
            logger.warning("session_store: remote_sign_out_failed user_id=%s error=%s", session.user_id, exc)

    async def update_profile(self, changes: Mapping[str, Any]) -> AuthResult:
        session = self._session
        if session is None or session.identity is None:
            return AuthResult.failure(UnauthorizedError("No active session."))

        try:
            output = await self._profile_updater.execute(
                identity=session.identity,
                changes=changes,
                access_token=session.access_token,
            )
        except DomainError as exc:
            return AuthResult.failure(exc)

        current = self._session
        if current is None or current.user_id != session.user_id:
            return AuthResult.failure(SessionSupersededError("Session changed during profile update."))
        if current.identity is None:
            return AuthResult(status=AuthStatus.UPDATED, identity=output.identity)

        merged = replace(current.identity, **output.applied_fields)
        self._session = Session(remote=current.remote, identity=merged)
        return AuthResult(status=AuthStatus.UPDATED, identity=merged)

    async def _complete_sign_in(self, remote: RemoteSession, generation: int) -> AuthResult:
        if self._signout_generation != generation:
            return await self._discard_stale(remote)

        current = self._session
        if current is None:
            self._handle_auth_change(AuthChangeEvent(event=AuthEvent.SIGNED_IN, session=remote))
        elif current.access_token != remote.access_token:
            return await self._discard_stale(remote)

        try:
            identity = await self._await_identity(remote)
        except AccountBlockedError as exc:
            return AuthResult.failure(exc)
        except DomainError as exc:
            logger.warning("session_store: profile_resolution_failed user_id=%s error=%s", remote.user_id, exc)
            await self._force_sign_out(remote)
            return AuthResult.failure(exc)

        if identity is None or self._signout_generation != generation:
            return await self._discard_stale(remote)

        logger.info("session_store: signed_in user_id=%s", identity.id)
        return AuthResult(status=AuthStatus.SIGNED_IN, identity=identity)

    async def _discard_stale(self, remote: RemoteSession) -> AuthResult:
        logger.info("session_store: stale_sign_in_discarded user_id=%s", remote.user_id)
        try:
            await self._identity_service.revoke_session(access_token=remote.access_token)
        except (RemoteAuthError, RemoteServiceError) as exc:
            logger.warning("session_store: stale_revoke_failed user_id=%s error=%s", remote.user_id, exc)
        if self._session is not None and self._session.access_token == remote.access_token:
            self._clear_local()
        return AuthResult.failure(SessionSupersededError("A newer session change superseded this sign-in."))

    async def _force_sign_out(self, remote: RemoteSession) -> None:
        if self._session is not None and self._session.access_token == remote.access_token:
            self._clear_local()
        else:
            self._signout_generation += 1
        try:
            await self._identity_service.sign_out(access_token=remote.access_token)
        except (RemoteAuthError, RemoteServiceError) as exc:
            logger.warning("session_store: forced_sign_out_failed user_id=%s error=%s", remote.user_id, exc)

    def _handle_auth_change(self, event: AuthChangeEvent) -> None:
        remote = event.session
        if event.event == AuthEvent.SIGNED_OUT or remote is None:
            self._signout_generation += 1
            if self._session is not None:
                self._session = None
                self._notify()
            return

        current = self._session
        identity = None
        if current is not None and current.user_id == remote.user_id:
            identity = current.identity
        self._session = Session(remote=remote, identity=identity)
        self._notify()

        if identity is None or event.event != AuthEvent.TOKEN_REFRESHED:
            self._schedule_resolution(remote)

    def _clear_local(self) -> None:
        self._signout_generation += 1
        self._session = None
        self._notify()

    def _notify(self) -> None:
        session = self._session
        for handler in list(self._listeners):
            handler(session)

    def _schedule_resolution(self, remote: RemoteSession) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("session_store: no_running_loop user_id=%s", remote.user_id)
            return

        task = loop.create_task(self._resolve_identity(remote, self._signout_generation))
        self._resolutions[remote.access_token] = task
        task.add_done_callback(lambda done: self._on_resolution_done(remote.access_token, done))

    def _on_resolution_done(self, access_token: str, task: asyncio.Task) -> None:
        if self._resolutions.get(access_token) is task:
            del self._resolutions[access_token]
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("session_store: background_profile_resolution_failed error=%s", exc)

    async def _await_identity(self, remote: RemoteSession) -> Identity | None:
        task = self._resolutions.get(remote.access_token)
        if task is not None:
            return await task
        return await self._resolve_identity(remote, self._signout_generation)

    async def _resolve_identity(self, remote: RemoteSession, generation: int) -> Identity | None:
        """Fetch the profile row and attach it to the session it belongs to.

        Returns ``None`` when the session was superseded while the fetch was
        in flight; the result is then dropped. A blocked profile is never
        attached: the session is signed out and ``AccountBlockedError`` raised.
        """
        try:
            identity = await self._identity_service.fetch_profile(
                user_id=remote.user_id,
                access_token=remote.access_token,
            )
        except (RemoteAuthError, RemoteServiceError) as exc:
            raise translate_remote_error(exc) from exc

        if identity is None:
            raise NotFoundError(f"Profile not found for user {remote.user_id}.")

        current = self._session
        if (
            generation != self._signout_generation
            or current is None
            or current.user_id != remote.user_id
        ):
            logger.debug("session_store: stale_profile_discarded user_id=%s", remote.user_id)
            return None

        if identity.is_blocked:
            logger.info("session_store: blocked_account_signed_out user_id=%s", identity.id)
            await self._force_sign_out(remote)
            raise AccountBlockedError("Your account has been blocked. Please contact support.")

        self._session = Session(remote=current.remote, identity=identity)
        return identity
