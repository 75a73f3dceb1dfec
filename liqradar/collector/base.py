# liqradar/collector/base.py
import asyncio
import inspect
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from liqradar.client.models import MarketTick

logger = logging.getLogger(__name__)

TickHandler = Callable[[MarketTick], Awaitable[None] | None]


class FeedError(Exception):
    pass


@dataclass
class FeedStatus:
    status: str  # connecting / connected / disconnected / error
    error: str | None = None
    symbols: int = 0
    streams: list[str] = field(default_factory=list)
    reconnect_attempts: int = 0


class BaseCollector(ABC):
    def __init__(self, name: str):
        self.name = name
        self.running = False
        self._task: asyncio.Task[None] | None = None
        self._handlers: list[TickHandler] = []

    def on_message(self, handler: TickHandler) -> TickHandler:
        self._handlers.append(handler)
        return handler

    async def _dispatch(self, tick: MarketTick) -> None:
        for handler in list(self._handlers):
            try:
                result = handler(tick)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"{self.name} handler failed for {tick.ticker}: {e}")

    @abstractmethod
    async def connect(self) -> None:
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        pass

    @abstractmethod
    async def _process_message(self, message: Any) -> None:
        pass

    async def start(self) -> None:
        self.running = True
        self._task = asyncio.create_task(self._run())
        logger.info(f"{self.__class__.__name__} started for {self.name}")

    async def stop(self) -> None:
        self.running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        await self.disconnect()
        logger.info(f"{self.__class__.__name__} stopped for {self.name}")

    @abstractmethod
    async def _run(self) -> None:
        pass
