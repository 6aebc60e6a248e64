"""
WebSocket client for the protocol bridge.

The messaging protocol itself is spoken by a bridge process; this module
talks to it over a single ``aiohttp`` WebSocket using JSON frames:

* ``{"type": "hello", "auth": {...} | null, "printQR": bool}`` - first frame
  we send. The bridge answers ``{"type": "ready", "user": {...}}`` or
  ``{"type": "rejected", "statusCode": int, "message": str}``.
* ``{"type": "event", "event": "<category>", "data": ...}`` - inbound events.
* ``{"type": "request", "id": str, "op": str, "args": {...}}`` and the
  matching ``{"type": "response", "id": str, "ok": bool, "result" | "error"}``.

If the socket drops without the bridge announcing a close, a synthetic
``connection.update`` close with :attr:`DisconnectReason.CONNECTION_LOST`
is emitted so consumers always see the disconnect.

Inbound events go through a bounded queue: when the consumer falls behind
the reader stops pulling frames off the socket, so responses to requests
wait behind them (bounded by the request timeout).
"""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from typing import Any, AsyncIterator, Mapping

import aiohttp
from aiohttp import WSMsgType

from tracie.config import connection, core
from tracie.errors import BridgeRequestError, ConnectError
from tracie.session.contracts import Event, EventKind
from tracie.session.reasons import DisconnectReason

logger = logging.getLogger(__name__)


class BridgeSession:
    """One authenticated bridge connection; discarded wholesale on reconnect."""

    def __init__(
        self,
        http: aiohttp.ClientSession,
        ws: aiohttp.ClientWebSocketResponse,
        user: Mapping[str, Any] | None,
        *,
        timeout: float,
        queue_size: int = 0,
    ) -> None:
        self.user = dict(user) if user else None
        self._http = http
        self._ws = ws
        self._timeout = timeout
        self._events: asyncio.Queue[Event | None] = asyncio.Queue(maxsize=queue_size)
        self._pending: dict[str, tuple[str, asyncio.Future]] = {}
        self._reader_task: asyncio.Task | None = None
        self._closed = False
        self._close_emitted = False

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    @classmethod
    async def open(
        cls,
        url: str,
        auth: dict | None,
        *,
        proxy: str | None = None,
        heartbeat: float = 30.0,
        timeout: float = 30.0,
        print_qr: bool = False,
        queue_size: int = 0,
    ) -> "BridgeSession":
        """Connect, authenticate, and start reading events."""

        http = aiohttp.ClientSession()
        try:
            ws = await http.ws_connect(url, heartbeat=heartbeat, proxy=proxy)
        except (aiohttp.ClientError, OSError, asyncio.TimeoutError) as exc:
            await http.close()
            raise ConnectError(f"Bridge unreachable at {url}: {exc}") from exc

        try:
            await ws.send_json({"type": "hello", "auth": auth, "printQR": print_qr})
            reply = await asyncio.wait_for(ws.receive_json(), timeout)
        except (aiohttp.ClientError, OSError, asyncio.TimeoutError, TypeError, ValueError) as exc:
            await ws.close()
            await http.close()
            raise ConnectError(f"Bridge handshake failed: {exc!r}") from exc

        try:
            user = _ready_user(reply)
        except ConnectError:
            await ws.close()
            await http.close()
            raise

        session = cls(http, ws, user, timeout=timeout, queue_size=queue_size)
        session._reader_task = asyncio.create_task(session._read_loop())
        return session

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True

        if self._reader_task:
            self._reader_task.cancel()
            try:
                await self._reader_task
            except asyncio.CancelledError:
                pass
            self._reader_task = None

        await self._ws.close()
        await self._http.close()
        self._fail_pending("session closed")
        self._put_terminal(None)

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------ #
    # Event stream
    # ------------------------------------------------------------------ #

    async def events(self) -> AsyncIterator[Event]:
        while True:
            event = await self._events.get()
            if event is None:
                return
            yield event

    async def _read_loop(self) -> None:
        try:
            async for msg in self._ws:
                if msg.type == WSMsgType.TEXT:
                    try:
                        frame = json.loads(msg.data)
                    except json.JSONDecodeError:
                        logger.warning("Dropping malformed bridge frame: %.100s", msg.data)
                        continue
                    await self._dispatch(frame)
                elif msg.type == WSMsgType.ERROR:
                    logger.warning("Bridge socket error: %s", self._ws.exception())
                    break
        finally:
            self._fail_pending("bridge socket closed")
            if not self._closed and not self._close_emitted:
                self._close_emitted = True
                self._put_terminal(
                    Event(
                        EventKind.CONNECTION_UPDATE,
                        {
                            "connection": "close",
                            "lastDisconnect": {
                                "statusCode": int(DisconnectReason.CONNECTION_LOST),
                                "message": "bridge socket closed",
                            },
                        },
                    )
                )
            self._put_terminal(None)

    def _put_terminal(self, item: Event | None) -> None:
        # Close events and the end-of-stream marker must always fit.
        while self._events.full():
            dropped = self._events.get_nowait()
            logger.warning("Event queue full at shutdown; dropping %s", dropped.kind.value if dropped else "marker")
        self._events.put_nowait(item)

    async def _dispatch(self, frame: Any) -> None:
        if not isinstance(frame, dict):
            logger.debug("Ignoring non-object bridge frame: %r", frame)
            return

        kind = frame.get("type")
        if kind == "event":
            try:
                event_kind = EventKind(frame.get("event"))
            except ValueError:
                logger.debug("Ignoring unknown bridge event %r", frame.get("event"))
                return
            data = frame.get("data")
            if (
                event_kind is EventKind.CONNECTION_UPDATE
                and isinstance(data, Mapping)
                and data.get("connection") == "close"
            ):
                self._close_emitted = True
            # Blocks the reader while the consumer is behind.
            await self._events.put(Event(event_kind, data))
        elif kind == "response":
            op, fut = self._pending.pop(str(frame.get("id")), ("response", None))
            if fut is None or fut.done():
                return
            if frame.get("ok"):
                fut.set_result(frame.get("result"))
            else:
                error = frame.get("error")
                if not isinstance(error, Mapping):
                    error = {}
                fut.set_exception(
                    BridgeRequestError(
                        op,
                        str(error.get("code") or "error"),
                        str(error.get("message") or "bridge request failed"),
                    )
                )
        else:
            logger.debug("Ignoring bridge frame of type %r", kind)

    # ------------------------------------------------------------------ #
    # Requests
    # ------------------------------------------------------------------ #

    def _fail_pending(self, reason: str) -> None:
        pending, self._pending = self._pending, {}
        for op, fut in pending.values():
            if not fut.done():
                fut.set_exception(BridgeRequestError(op, "closed", reason))

    async def _request(self, op: str, **args: Any) -> Any:
        if self._closed or self._ws.closed:
            raise BridgeRequestError(op, "closed", "session is closed")

        req_id = uuid.uuid4().hex
        fut = asyncio.get_running_loop().create_future()
        self._pending[req_id] = (op, fut)
        try:
            await self._ws.send_json({"type": "request", "id": req_id, "op": op, "args": args})
            return await asyncio.wait_for(fut, self._timeout)
        except asyncio.TimeoutError as exc:
            raise BridgeRequestError(op, "timeout", f"no response within {self._timeout}s") from exc
        except (aiohttp.ClientError, ConnectionResetError) as exc:
            raise BridgeRequestError(op, "send_failed", str(exc)) from exc
        finally:
            self._pending.pop(req_id, None)

    async def send_message(self, jid: str, content: Mapping[str, Any]) -> Mapping[str, Any]:
        return await self._request("sendMessage", jid=jid, content=dict(content))

    async def fetch_group_metadata(self, jid: str) -> dict:
        return await self._request("groupMetadata", jid=jid)

    async def fetch_all_groups(self) -> dict[str, dict]:
        groups = await self._request("groupFetchAllParticipating")
        return dict(groups or {})


def _ready_user(reply: Any) -> dict | None:
    """Return the bot identity from a ``ready`` reply or raise ``ConnectError``."""

    kind = reply.get("type") if isinstance(reply, dict) else None
    if kind == "rejected":
        status = reply.get("statusCode")
        raise ConnectError(
            str(reply.get("message") or "handshake rejected"),
            status_code=status if isinstance(status, int) else None,
        )
    if kind != "ready":
        raise ConnectError(f"Unexpected handshake reply: {reply!r:.200}")

    user = reply.get("user")
    if user is None:
        return None
    if not isinstance(user, Mapping):
        raise ConnectError(f"Malformed ready frame: user is {type(user).__name__}")
    return dict(user)


async def connect(auth: dict | None) -> BridgeSession:
    """Session factory wired to the configured bridge."""

    return await BridgeSession.open(
        connection.BRIDGE_URL,
        auth,
        proxy=connection.PROXY,
        heartbeat=connection.KEEPALIVE_INTERVAL,
        timeout=connection.REQUEST_TIMEOUT,
        print_qr=core.PRINT_QR,
        queue_size=connection.EVENT_QUEUE_SIZE,
    )


__all__ = ["BridgeSession", "connect"]
