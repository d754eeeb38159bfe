from __future__ import annotations

from collections import defaultdict, deque
from typing import Awaitable, Callable, override

from loguru import logger

from site_rebuilder.application.commands import Command
from site_rebuilder.domain.events import Event
from site_rebuilder.domain.message_bus import Handler, Message, MessageBus


class FunctionHandler(Handler):
    """함수를 핸들러 프로토콜에 맞게 감싸는 어댑터"""

    def __init__(self, handler_func: Callable[[Message], Awaitable[None]]):
        self._handler_func = handler_func

    @override
    async def handle(self, message: Message) -> None:
        await self._handler_func(message)


class InMemoryMessageBus(MessageBus):
    """인메모리 메시지 버스 구현체

    핸들러 실행 중에 들어온 메시지(커밋 후 발행되는 이벤트 등)는 큐에 쌓였다가
    현재 핸들러가 끝난 뒤 FIFO 순서로 처리됩니다. 핸들러의 예외는 호출자에게 전파되고
    남은 큐는 비워집니다.
    """

    def __init__(self):
        self._command_handlers: dict[type[Command], Handler] = {}
        self._event_handlers: defaultdict[type[Event], list[Handler]] = defaultdict(
            list
        )
        self._queue: deque[Message] = deque()
        self._dispatching = False

    @override
    def register_command(self, command: type[Command], handler: Handler) -> None:
        if command in self._command_handlers:
            raise ValueError(f"Command {command.__name__} already has a handler.")
        self._command_handlers[command] = handler

    @override
    def subscribe_to_event(self, event: type[Event], handler: Handler) -> None:
        self._event_handlers[event].append(handler)

    @override
    async def handle(self, message: Message) -> None:
        if not isinstance(message, (Command, Event)):
            raise TypeError(
                f"Message must be a Command or Event, not {type(message).__name__}"
            )
        self._queue.append(message)
        if self._dispatching:
            return

        self._dispatching = True
        try:
            while self._queue:
                await self._dispatch(self._queue.popleft())
        except Exception:
            self._queue.clear()
            raise
        finally:
            self._dispatching = False

    async def _dispatch(self, message: Message) -> None:
        if isinstance(message, Event):
            logger.debug(f"Dispatching event {message.name}")
            for handler in self._event_handlers[type(message)]:
                await handler.handle(message)
            return

        handler = self._command_handlers.get(type(message))
        if handler is None:
            raise ValueError(f"No handler found for command {type(message).__name__}")
        logger.debug(f"Dispatching command {type(message).__name__}")
        await handler.handle(message)
