"""Push notification broadcast endpoint."""

import logging
from typing import Any

from urban_auto.backend.interfaces import PushGateway
from urban_auto.errors import BackendError
from urban_auto.utils import is_blank

logger = logging.getLogger(__name__)


class BroadcastHandler:
    """``POST {title, body}`` -> ``(200, {success, count})`` or an error body."""

    def __init__(self, gateway: PushGateway) -> None:
        self._gateway = gateway

    async def handle(self, payload: dict[str, Any]) -> tuple[int, dict[str, Any]]:
        title = payload.get("title")
        body = payload.get("body")
        if is_blank(title) or is_blank(body):
            return 400, {"success": False, "error": "Please enter both title and body"}

        try:
            count = await self._gateway.broadcast(title.strip(), body.strip())
        except BackendError as exc:
            logger.error("Broadcast failed: %s", exc.message)
            return 500, {"success": False, "error": exc.message}

        logger.info("Broadcast '%s' sent to %d device(s)", title.strip(), count)
        return 200, {"success": True, "count": count}
