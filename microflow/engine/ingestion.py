"""
Feed Transport - websocket delivery of trades and book deltas.

One combined-stream connection per symbol multiplexes:
- <symbol>@aggTrade               (trade prints)
- <symbol>@depth20@100ms          (top-N book updates)

Every raw text frame is handed to MicrostructureEngine.handle_message on
the transport's task, one at a time.

Reconnect ordering:
1. The connection generation is bumped, so frames still buffered on the
   old handle are discarded instead of reaching the engine.
2. The old websocket is closed.
3. Only then is a new connection opened.

A dropped connection only changes StreamState; the engine keeps its
last computed state and resumes on the next valid message.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional

import aiohttp

from ..utils.backoff import ExponentialBackoff
from .core import MicrostructureEngine

logger = logging.getLogger(__name__)


class StreamState(Enum):
    """State of the feed connection."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    ERROR = "error"


@dataclass
class StreamStats:
    """Statistics for the feed connection."""

    messages_received: int = 0
    bytes_received: int = 0
    stale_messages: int = 0
    last_message_time: Optional[int] = None
    reconnect_count: int = 0
    error_count: int = 0


@dataclass
class FeedConfig:
    """Connection settings for the combined stream."""

    ws_base: str = "wss://fstream.binance.com/stream"
    depth_levels: int = 20
    depth_speed_ms: int = 100

    heartbeat_seconds: float = 30.0
    receive_timeout_seconds: float = 60.0

    # Reconnect pacing
    backoff_base: float = 1.0
    backoff_max: float = 30.0
    backoff_jitter: bool = True


StatusCallback = Callable[[StreamState], Any]


class FeedTransport:
    """
    Websocket transport feeding one engine.

    Usage:
        engine = MicrostructureEngine(EngineConfig.star_count("btcusdt"))
        transport = FeedTransport(engine)
        transport.add_status_callback(lambda s: print("LINK:", s.value))

        async with transport:
            await asyncio.sleep(3600)
    """

    def __init__(
        self,
        engine: MicrostructureEngine,
        config: Optional[FeedConfig] = None,
        session_factory: Callable[[], Any] = aiohttp.ClientSession,
    ):
        self.engine = engine
        self.symbol = engine.symbol
        self.config = config or FeedConfig()

        self._session_factory = session_factory
        self._session: Optional[Any] = None
        self._ws: Optional[Any] = None
        self._task: Optional[asyncio.Task] = None

        self._state = StreamState.DISCONNECTED
        self._stats = StreamStats()
        self._status_callbacks: List[StatusCallback] = []

        self._running = False
        self._generation = 0
        self._reconnect_requested = False
        self._wakeup = asyncio.Event()
        self._attempt = 0
        self._backoff = ExponentialBackoff(
            base=self.config.backoff_base,
            max_delay=self.config.backoff_max,
            jitter=self.config.backoff_jitter,
        )

    # === Properties ===

    @property
    def state(self) -> StreamState:
        return self._state

    @property
    def stats(self) -> StreamStats:
        return self._stats

    @property
    def generation(self) -> int:
        """Identifier of the currently installed connection."""
        return self._generation

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def stream_names(self) -> List[str]:
        return [
            f"{self.symbol}@aggTrade",
            f"{self.symbol}@depth{self.config.depth_levels}@{self.config.depth_speed_ms}ms",
        ]

    @property
    def url(self) -> str:
        return f"{self.config.ws_base}?streams={'/'.join(self.stream_names)}"

    # === Status callbacks ===

    def add_status_callback(self, callback: StatusCallback) -> None:
        """Add callback invoked with the new StreamState on every change."""
        self._status_callbacks.append(callback)

    def remove_status_callback(self, callback: StatusCallback) -> None:
        if callback in self._status_callbacks:
            self._status_callbacks.remove(callback)

    def _set_state(self, state: StreamState) -> None:
        if state is self._state:
            return
        logger.debug(f"{self.symbol} feed state: {self._state.value} -> {state.value}")
        self._state = state
        for callback in list(self._status_callbacks):
            try:
                callback(state)
            except Exception as e:
                logger.error(f"Status callback error: {e}")

    # === Delivery ===

    def deliver(self, generation: int, raw: Any) -> bool:
        """
        Forward one frame from connection `generation` to the engine.

        Frames from a connection that has since been replaced are dropped.
        Returns True when the frame reached the engine.
        """
        if generation != self._generation:
            self._stats.stale_messages += 1
            logger.debug(f"Discarding frame from stale connection {generation} (current {self._generation})")
            return False

        self._stats.messages_received += 1
        self._stats.bytes_received += len(raw) if isinstance(raw, (str, bytes)) else 0
        self._stats.last_message_time = int(time.time() * 1000)
        self.engine.handle_message(raw)
        return True

    # === Lifecycle ===

    async def start(self) -> None:
        """Open the session and start the connection loop."""
        if self._running:
            return

        self._running = True
        self._set_state(StreamState.CONNECTING)
        self._session = self._session_factory()
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """
        Close the connection and stop the loop.

        The session is always closed. An exception that ended the loop
        (an InvariantViolation in strict mode, say) is re-raised after
        cleanup.
        """
        self._running = False
        self._generation += 1
        self._wakeup.set()

        try:
            await self._release_handle()

            task, self._task = self._task, None
            if task:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        finally:
            if self._session:
                session, self._session = self._session, None
                await session.close()
            self._set_state(StreamState.DISCONNECTED)

    async def reconnect(self) -> None:
        """
        Replace the current connection.

        The old handle is invalidated and closed before the loop opens
        the next one.
        """
        if not self._running:
            await self.start()
            return

        logger.info(f"Reconnecting {self.symbol} feed")
        self._generation += 1
        if await self._release_handle():
            # The loop sees the closed handle and reopens without backoff
            self._reconnect_requested = True
        self._wakeup.set()
        self._set_state(StreamState.RECONNECTING)

    async def _release_handle(self) -> bool:
        """Close the installed websocket. Returns True if one was open."""
        ws, self._ws = self._ws, None
        if ws is None or ws.closed:
            return False
        await ws.close()
        return True

    async def _run(self) -> None:
        """Main connection loop with reconnection."""
        while self._running:
            self._generation += 1
            generation = self._generation
            self._reconnect_requested = False
            ws = None

            try:
                logger.info(f"Connecting to {self.url}")
                async with self._session.ws_connect(
                    self.url,
                    heartbeat=self.config.heartbeat_seconds,
                    receive_timeout=self.config.receive_timeout_seconds,
                ) as ws:
                    if generation != self._generation or not self._running:
                        # Superseded while the handshake was in flight
                        continue

                    self._ws = ws
                    self._attempt = 0
                    self._set_state(StreamState.CONNECTED)
                    logger.info(f"Feed connected: {self.symbol}")

                    async for msg in ws:
                        if not self._running:
                            break
                        if msg.type == aiohttp.WSMsgType.TEXT:
                            self.deliver(generation, msg.data)
                        elif msg.type == aiohttp.WSMsgType.ERROR:
                            logger.error(f"WebSocket error: {ws.exception()}")
                            break

            except asyncio.CancelledError:
                break
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                self._stats.error_count += 1
                logger.error(f"Feed error for {self.symbol}: {e}")
                self._set_state(StreamState.ERROR)
            except Exception as e:
                # Engine failures are fatal; stop() re-raises after cleanup
                self._stats.error_count += 1
                self._running = False
                logger.error(f"Feed loop for {self.symbol} stopped: {e!r}")
                self._set_state(StreamState.ERROR)
                raise
            finally:
                if ws is not None and self._ws is ws:
                    self._ws = None

            if not self._running:
                break

            if self._reconnect_requested:
                self._reconnect_requested = False
                self._stats.reconnect_count += 1
                continue

            self._set_state(StreamState.RECONNECTING)
            self._stats.reconnect_count += 1
            delay = self._backoff.calculate(self._attempt)
            self._attempt += 1
            logger.info(f"Feed for {self.symbol} closed, retrying in {delay:.2f}s")
            await self._sleep_or_wake(delay)

        self._set_state(StreamState.DISCONNECTED)

    async def _sleep_or_wake(self, delay: float) -> None:
        """Wait out a backoff delay, returning early if reconnect() or stop() is called."""
        self._wakeup.clear()
        try:
            await asyncio.wait_for(self._wakeup.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.stop()
