from __future__ import annotations

import asyncio
import json
from typing import Any, Dict, Mapping, Optional, Tuple

from mcp import ClientSession
from mcp.client.streamable_http import streamablehttp_client
from mcp.types import CallToolResult, Implementation, InitializeResult, TextContent

from ..errors import InitializationError, ToolCallError, TransportError
from ..types import ActionResult
from ..utils import setup_logger
from .base import ToolTransport, parse_tool_payload


logger = setup_logger("autoconf.transport")

_Request = Tuple[str, Dict[str, Any], "asyncio.Future[CallToolResult]"]


class McpToolTransport(ToolTransport):
    """Streamable-HTTP MCP session, established once and reused.

    The HTTP streams and the ClientSession live in a single owner task started
    by ``initialize`` and stopped by ``close``. Calls are queued to that task
    and answered through futures, so a cancel scope torn down by a dropped
    connection ends the owner task only; callers see InitializationError
    during the handshake and TransportError afterwards.
    """

    def __init__(
        self,
        endpoint: str,
        *,
        client_name: str = "auto-decision-agent",
        client_version: str = "1.0.0",
        handshake_timeout_s: float = 10.0,
    ) -> None:
        self.endpoint = endpoint
        self.client_info = Implementation(name=client_name, version=client_version)
        self.handshake_timeout_s = handshake_timeout_s
        self._attached: Optional[ClientSession] = None
        self._requests: Optional[asyncio.Queue] = None
        self._owner: Optional[asyncio.Task] = None
        self._ready = False

    @classmethod
    def attach(cls, session: ClientSession, endpoint: str = "attached") -> "McpToolTransport":
        """Wrap a session whose handshake has already completed; ``initialize`` still starts the owner task."""
        transport = cls(endpoint)
        transport._attached = session
        return transport

    @property
    def initialized(self) -> bool:
        return self._ready and self._owner is not None and not self._owner.done()

    async def initialize(self) -> None:
        if self._owner is not None:
            if self.initialized:
                return
            raise InitializationError(f"MCP session with {self.endpoint} is closed")
        handshake: asyncio.Future = asyncio.get_running_loop().create_future()
        self._requests = asyncio.Queue()
        self._owner = asyncio.create_task(self._own_session(handshake), name=f"mcp-session {self.endpoint}")
        try:
            result = await asyncio.wait_for(asyncio.shield(handshake), timeout=self.handshake_timeout_s)
        except asyncio.TimeoutError as exc:
            await self._stop_owner(graceful=False)
            if handshake.done() and not handshake.cancelled():
                handshake.exception()
            raise InitializationError(
                f"MCP handshake with {self.endpoint} timed out after {self.handshake_timeout_s:.1f}s"
            ) from exc
        except InitializationError:
            await self._stop_owner(graceful=False)
            raise
        self._ready = True
        if result is not None:
            logger.info(
                "MCP session established with %s %s (protocol %s)",
                result.serverInfo.name,
                result.serverInfo.version,
                result.protocolVersion,
            )

    async def call(self, name: str, arguments: Mapping[str, Any]) -> ActionResult:
        if not self._ready or self._owner is None or self._requests is None:
            raise TransportError("session not initialized")
        if self._owner.done():
            raise TransportError(f"MCP session with {self.endpoint} is closed")
        reply: asyncio.Future = asyncio.get_running_loop().create_future()
        self._requests.put_nowait((name, dict(arguments), reply))
        result = await reply
        return _result_from_call(name, result)

    async def close(self) -> None:
        self._ready = False
        await self._stop_owner()

    async def _own_session(self, handshake: asyncio.Future) -> None:
        try:
            if self._attached is not None:
                _resolve(handshake, None)
                await self._serve(self._attached)
                return
            async with streamablehttp_client(self.endpoint) as (read_stream, write_stream, _):
                async with ClientSession(read_stream, write_stream, client_info=self.client_info) as session:
                    result: InitializeResult = await session.initialize()
                    _resolve(handshake, result)
                    await self._serve(session)
        except (KeyboardInterrupt, SystemExit):
            raise
        except BaseException as exc:
            # task root: a cancel scope torn down by a dropped connection ends here
            if handshake.done():
                logger.warning("MCP session with %s ended: %r", self.endpoint, exc)
            else:
                handshake.set_exception(
                    InitializationError(f"MCP handshake with {self.endpoint} failed: {exc!r}")
                )
            self._fail_pending(exc)
        finally:
            self._ready = False
            if not handshake.done():
                handshake.set_exception(InitializationError(f"MCP session with {self.endpoint} closed"))
            self._fail_pending(None)

    async def _serve(self, session: ClientSession) -> None:
        assert self._requests is not None
        while True:
            request: Optional[_Request] = await self._requests.get()
            if request is None:
                return
            name, arguments, reply = request
            if reply.done():
                continue
            try:
                result = await session.call_tool(name, arguments)
            except Exception as exc:
                _fail(reply, TransportError(f"call {name} failed: {exc!r}"))
            except BaseException:
                _fail(reply, TransportError(f"call {name} interrupted: MCP session with {self.endpoint} ended"))
                raise
            else:
                _resolve(reply, result)

    def _fail_pending(self, cause: Optional[BaseException]) -> None:
        if self._requests is None:
            return
        message = f"MCP session with {self.endpoint} closed"
        if cause is not None:
            message = f"{message}: {cause!r}"
        while not self._requests.empty():
            request = self._requests.get_nowait()
            if request is not None:
                _fail(request[2], TransportError(message))

    async def _stop_owner(self, graceful: bool = True) -> None:
        owner, self._owner = self._owner, None
        if owner is None:
            return
        if not owner.done():
            if graceful and self._requests is not None:
                self._requests.put_nowait(None)
                try:
                    await asyncio.wait_for(asyncio.shield(owner), timeout=self.handshake_timeout_s)
                except asyncio.TimeoutError:
                    owner.cancel()
            else:
                owner.cancel()
        try:
            await owner
        except asyncio.CancelledError:
            pass
        except Exception as exc:
            logger.debug("Error while closing MCP session: %r", exc)
        # keep the closed owner so a second initialize reports the closed session
        self._owner = owner


def _resolve(future: asyncio.Future, value: Any) -> None:
    if not future.done():
        future.set_result(value)


def _fail(future: asyncio.Future, exc: BaseException) -> None:
    if not future.done():
        future.set_exception(exc)


def _result_from_call(name: str, result: CallToolResult) -> ActionResult:
    text = "".join(item.text for item in result.content if isinstance(item, TextContent))
    if result.isError:
        raise ToolCallError(text or f"{name} returned an error")
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise TransportError(f"malformed response from {name}: {text!r}") from exc
    return parse_tool_payload(payload)
