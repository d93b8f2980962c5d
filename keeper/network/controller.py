"""Session controller: reacts to SDK lifecycle events and drives logon/retry."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Any, Awaitable, Callable, Optional

from keeper.collaborators import (
    AuthCodePrompt,
    CatalogSync,
    JobCoordinator,
    Notifier,
    PeriodicTimer,
    StatusReporter,
)
from keeper.config import KeeperSettings
from keeper.credentials import CredentialStore, CredentialStoreError
from keeper.network.dispatcher import EventDispatcher
from keeper.network.retry import RetryScheduler, Sleep
from keeper.network.session_state import SessionState, SessionTracker
from keeper.network.transport.base import SessionTransport, TransportError
from keeper.protocol import (
    ConnectedEvent,
    CredentialAck,
    CredentialRotationRequest,
    DisconnectedEvent,
    LoggedOffEvent,
    LoggedOnEvent,
    LogOnDetails,
    ResultCode,
)

LOGGER = logging.getLogger(__name__)


def format_server_time(value: Optional[datetime]) -> str:
    """RFC 1123 rendering of the service clock, e.g. ``Mon, 15 Jun 2009 20:45:30 GMT``."""

    if value is None:
        return "unknown"
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return format_datetime(value.astimezone(timezone.utc), usegmt=True)


class SessionController:
    """Owns the session state, the pending auth code and the reconnect policy.

    Handlers are invoked one at a time by the dispatcher and never raise;
    every failure is logged and announced locally.
    """

    def __init__(
        self,
        settings: KeeperSettings,
        transport: SessionTransport,
        *,
        credentials: CredentialStore,
        notifier: Notifier,
        status_reporter: StatusReporter,
        jobs: JobCoordinator,
        timer: PeriodicTimer,
        catalog: CatalogSync,
        auth_prompt: AuthCodePrompt,
        retry: Optional[RetryScheduler] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._settings = settings
        self._transport = transport
        self._credentials = credentials
        self._notifier = notifier
        self._status_reporter = status_reporter
        self._jobs = jobs
        self._timer = timer
        self._catalog = catalog
        self._auth_prompt = auth_prompt
        self._retry = retry or RetryScheduler()
        self._sleep = sleep
        self._dispatcher: Optional[EventDispatcher] = None
        self._tracker = SessionTracker()
        self._auth_code: Optional[str] = None
        self._running = False

    @property
    def state(self) -> SessionState:
        return self._tracker.state

    @property
    def pending_auth_code(self) -> Optional[str]:
        return self._auth_code

    @property
    def running(self) -> bool:
        """``False`` once shutdown was requested; suppresses reconnects."""

        return self._running

    @property
    def retry_pending(self) -> bool:
        return self._retry.pending

    def attach(self, dispatcher: EventDispatcher) -> None:
        """Register the lifecycle handlers on the dispatcher.

        Reconnects fired by the retry timer are then run through the same
        dispatcher, so they never interleave with a handler.
        """

        self._dispatcher = dispatcher
        dispatcher.register_handler("connected", self.on_connected)
        dispatcher.register_handler("disconnected", self.on_disconnected)
        dispatcher.register_handler("loggedOn", self.on_logged_on)
        dispatcher.register_handler("loggedOff", self.on_logged_off)
        dispatcher.register_handler("credentialRotation", self.on_credential_rotation)

    async def start(self) -> None:
        self._running = True
        await self._request_connect()

    async def stop(self) -> None:
        """Planned shutdown: no retry, no periodic work, log off when logged on."""

        self._running = False
        await self._retry.cancel()
        self._timer.stop()
        if self.state is SessionState.LOGGED_ON:
            self._tracker.transition(SessionState.LOGGING_OFF, strict=False)
            try:
                await self._transport.log_off()
            except TransportError as exc:
                LOGGER.warning("Log off request failed: %s", exc)
        if self.state is not SessionState.DISCONNECTED:
            try:
                await self._transport.disconnect()
            except TransportError as exc:
                LOGGER.warning("Disconnect request failed: %s", exc)

    # Event handlers

    async def on_connected(self, event: ConnectedEvent) -> None:
        if not event.result.ok:
            self._tracker.transition(SessionState.DISCONNECTED, strict=False)
            await self._report_status(event.result_text)
            await self._announce_emote(f"failed to connect: {event.result_text}")
            LOGGER.info("Could not connect: %s", event.result_text)
            return

        if not self._running:
            LOGGER.info("Connected after shutdown was requested; not logging on")
            return

        # A connection that came up by itself supersedes the scheduled retry.
        if self._retry.pending:
            await self._retry.cancel()

        self._tracker.transition(SessionState.CONNECTED, strict=False)
        await self._report_status(ResultCode.NOT_LOGGED_ON.value)
        LOGGER.info("Connected, logging in...")

        details = LogOnDetails(
            username=self._settings.username,
            password=self._settings.password,
            auth_code=self._auth_code,
            sentry_hash=self._credentials.load_hash(),
        )
        self._tracker.transition(SessionState.LOGGING_ON, strict=False)
        try:
            await self._transport.log_on(details)
        except TransportError as exc:
            LOGGER.warning("Log on request failed: %s", exc)
            self._tracker.transition(SessionState.CONNECTED, strict=False)

    async def on_disconnected(self, event: DisconnectedEvent) -> None:
        timer_was_enabled = self._timer.enabled
        self._timer.stop()
        self._tracker.transition(SessionState.DISCONNECTED, strict=False)

        if not self._running:
            LOGGER.info("Disconnected from %s", self._settings.service_name)
            return

        if timer_was_enabled:
            await self._announce_main(
                f"Disconnected from {self._settings.service_name}. See {self._settings.status_url}"
            )

        await self._report_status(ResultCode.NO_CONNECTION.value)
        await self._best_effort("job cancel", self._jobs.cancel_pending_jobs)
        await self._schedule_retry()

    async def on_logged_on(self, event: LoggedOnEvent) -> None:
        result = event.result
        await self._report_status(event.result_text)

        if result.needs_auth_code:
            self._tracker.transition(SessionState.CONNECTED, strict=False)
            # Blocks event delivery until the operator answers.
            try:
                code = await self._auth_prompt.ask(event.email_domain)
            except Exception:  # noqa: BLE001
                LOGGER.exception("Unable to read two-factor code")
                return
            self._auth_code = code or None
            LOGGER.info("Two-factor code captured; it will be used on the next logon")
            return

        if not result.ok:
            self._tracker.transition(SessionState.CONNECTED, strict=False)
            LOGGER.info("Failed to login: %s", event.result_text)
            await self._announce_emote(f"failed to log in: {event.result_text}")
            await self._sleep(self._settings.logon_failure_cooldown_seconds)
            return

        self._tracker.transition(SessionState.LOGGED_ON, strict=False)
        self._auth_code = None
        server_time = format_server_time(event.server_time)
        LOGGER.info("Logged in, current server time is %s", server_time)
        await self._announce_main(f"Logged in to {self._settings.service_name}. Server time: {server_time}")
        await self._announce_emote("logged in.")

        if self._settings.full_run:
            await self._best_effort("initial catalog sync", self._start_initial_sync)
        else:
            await self._best_effort("job restart", self._jobs.restart_pending_jobs)
            self._timer.start()

    async def on_logged_off(self, event: LoggedOffEvent) -> None:
        self._timer.stop()
        self._tracker.transition(SessionState.LOGGING_OFF, strict=False)
        service = self._settings.service_name
        LOGGER.info("Logged out of %s: %s", service, event.result_text)
        await self._announce_main(f"Logged out of {service}: {event.result_text}. See {self._settings.status_url}")
        await self._announce_emote(f"logged out of {service}: {event.result_text}")
        await self._report_status(event.result_text)

    async def on_credential_rotation(self, event: CredentialRotationRequest) -> None:
        LOGGER.info("Updating sentry file...")
        sentry_hash = CredentialStore.hash(event.data)
        try:
            self._credentials.save(event.data)
        except CredentialStoreError:
            # Unacknowledged rotations are re-sent by the service.
            LOGGER.exception("Sentry update not acknowledged: credential could not be persisted")
            await self._announce_emote("failed to store the new sentry file")
            return

        ack = CredentialAck(
            job_id=event.job_id,
            file_name=event.file_name,
            bytes_written=event.bytes_to_write,
            file_size=len(event.data),
            offset=event.offset,
            result=ResultCode.OK,
            last_error=0,
            one_time_password=event.one_time_password,
            sentry_hash=sentry_hash,
        )
        try:
            await self._transport.send_credential_ack(ack)
        except TransportError as exc:
            LOGGER.error("Failed to acknowledge sentry update (job %s): %s", event.job_id, exc)

    # Internals

    async def _schedule_retry(self) -> None:
        if self._retry.pending:
            return
        delay = self._settings.retry_delay_seconds
        service = self._settings.service_name
        LOGGER.info("Disconnected from %s. Retrying in %g seconds...", service, delay)
        await self._announce_emote(f"disconnected from {service}. Retrying in {delay:g} seconds...")
        self._retry.schedule(delay, self._fire_retry, lambda: not self._running)

    async def _fire_retry(self) -> None:
        if self._dispatcher is None:
            await self._reconnect()
        else:
            await self._dispatcher.submit(self._reconnect)

    async def _reconnect(self) -> None:
        if not self._running:
            return
        # An event delivered while the timer ran may already have reconnected.
        if self.state is not SessionState.DISCONNECTED:
            LOGGER.debug("Retry skipped: session is %s", self.state.value)
            return
        await self._request_connect()

    async def _start_initial_sync(self) -> None:
        if self._catalog.needs_initial_sync():
            await self._catalog.start_initial_sync()

    async def _request_connect(self) -> None:
        self._tracker.transition(SessionState.CONNECTING, strict=False)
        try:
            await self._transport.connect()
        except TransportError as exc:
            # No disconnect event will follow a request that never left.
            LOGGER.warning("Connect request failed: %s", exc)
            self._tracker.transition(SessionState.DISCONNECTED, strict=False)
            if self._running:
                await self._schedule_retry()

    async def _report_status(self, status: str) -> None:
        await self._best_effort(
            "status update", self._status_reporter.update_status, self._settings.status_channel_id, status
        )

    async def _announce_main(self, message: str) -> None:
        await self._best_effort("main announcement", self._notifier.announce_main, message)

    async def _announce_emote(self, message: str) -> None:
        await self._best_effort("emote announcement", self._notifier.announce_emote, message)

    @staticmethod
    async def _best_effort(label: str, func: Callable[..., Awaitable[None]], *args: Any) -> None:
        try:
            await func(*args)
        except Exception:  # noqa: BLE001
            LOGGER.debug("Suppress %s error", label, exc_info=True)
