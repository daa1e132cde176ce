from __future__ import annotations

import hmac
import logging

from aiohttp import web

from arena_watch.pairing import PairingPinger

logger = logging.getLogger(__name__)

LIVENESS_BANNER = "arena-watch is running"
PING_RESPONSE = "pong"


class ControlServer:
    """Liveness banner plus the secret-gated ``GET /ping`` re-arm trigger.

    Every request is answered with ``200 text/plain``.
    """

    def __init__(
        self,
        *,
        pairing: PairingPinger,
        secret: str | None,
        host: str = "0.0.0.0",
        port: int = 3000,
    ) -> None:
        self.pairing = pairing
        self.secret = secret
        self.host = host
        self.port = port
        self._runner: web.AppRunner | None = None

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_route("*", "/{tail:.*}", self.handle)
        return app

    async def handle(self, request: web.Request) -> web.Response:
        if (
            request.method == "GET"
            and request.path == "/ping"
            and self._is_authorized(request.query.get("secret"))
        ):
            logger.info("Authenticated ping received; re-arming partner ping")
            self.pairing.arm()
            return web.Response(text=PING_RESPONSE, content_type="text/plain")

        return web.Response(text=LIVENESS_BANNER, content_type="text/plain")

    async def start(self) -> None:
        runner = web.AppRunner(self.build_app())
        await runner.setup()
        site = web.TCPSite(runner, self.host, self.port)
        try:
            await site.start()
        except OSError:
            await runner.cleanup()
            raise
        self._runner = runner
        logger.info("Control endpoint listening on %s:%d", self.host, self.port)

    async def stop(self) -> None:
        if self._runner is None:
            return
        await self._runner.cleanup()
        self._runner = None

    def _is_authorized(self, provided: str | None) -> bool:
        if not self.secret or provided is None:
            return False
        return hmac.compare_digest(provided.encode("utf-8"), self.secret.encode("utf-8"))
