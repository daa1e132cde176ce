from __future__ import annotations

import asyncio
import enum
import logging

import requests

from arena_watch.errors import PairingPingError
from arena_watch.utils.url_utils import join_path

logger = logging.getLogger(__name__)


class PingState(enum.Enum):
    NO_PENDING_TIMER = "no_pending_timer"
    TIMER_ARMED = "timer_armed"


class PairingPinger:
    """Keeps a partner instance awake with a delayed, coalescing ping.

    At most one timer is pending: ``arm()`` cancels the live timer before
    scheduling a new one, so the ping fires ``delay_seconds`` after the last
    arm. When the timer fires the state goes back to ``NO_PENDING_TIMER``
    and one ping is sent.
    """

    def __init__(
        self,
        *,
        partner_url: str | None,
        secret: str | None,
        delay_seconds: float = 60,
        primary: bool = False,
        timeout_seconds: int = 15,
    ) -> None:
        self.partner_url = partner_url
        self.secret = secret
        self.delay_seconds = delay_seconds
        self.primary = primary
        self.timeout_seconds = timeout_seconds
        self._timer: asyncio.TimerHandle | None = None
        self._in_flight: set[asyncio.Task[bool]] = set()
        self._closed = False

    @property
    def state(self) -> PingState:
        if self._timer is None:
            return PingState.NO_PENDING_TIMER
        return PingState.TIMER_ARMED

    async def start(self) -> None:
        if not self.primary:
            logger.info("Secondary role: waiting for the partner to ping first")
            return
        self.arm()
        await self.ping_partner()

    def arm(self) -> None:
        if self._closed:
            logger.info("Pairing closed; ignoring re-arm")
            return
        loop = asyncio.get_running_loop()
        if self._timer is not None:
            self._timer.cancel()
            logger.debug("Cancelled pending ping timer")
        self._timer = loop.call_later(self.delay_seconds, self._fire)
        logger.info("Ping timer armed, partner ping in %ss", self.delay_seconds)

    async def ping_partner(self) -> bool:
        if not self.partner_url:
            logger.info("No partner URL configured; skipping ping")
            return False

        try:
            body = await asyncio.to_thread(self._send_ping)
        except PairingPingError as exc:
            logger.warning("Partner ping failed: %s", exc)
            return False

        logger.info("Partner answered ping: %s", body)
        return True

    async def close(self) -> None:
        self._closed = True
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._in_flight:
            await asyncio.gather(*self._in_flight, return_exceptions=True)

    def _fire(self) -> None:
        self._timer = None
        task = asyncio.get_running_loop().create_task(self.ping_partner())
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    def _send_ping(self) -> str:
        url = join_path(self.partner_url or "", "ping")
        try:
            response = requests.get(
                url,
                params={"secret": self.secret or ""},
                timeout=self.timeout_seconds,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            raise PairingPingError(f"GET {url} failed: {exc}") from exc
        return response.text.strip()
