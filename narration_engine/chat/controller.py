"""Chat Session Controller.

Runs one conversational exchange at a time against the chat collaborator,
accumulating streamed text and tool-call status into the assistant message.
Independent of the narration timeline: its errors never touch playback.
"""

import logging
import time
from typing import Callable

from narration_engine.config import Settings, get_settings, report_misuse
from narration_engine.exceptions import TransportError
from narration_engine.observability import (
    ChatTokenEvent,
    NullHook,
    ObservabilityHook,
    StreamClosedEvent,
    StreamOpenedEvent,
    ToolCallEvent,
)
from narration_engine.streaming import (
    EventStreamReader,
    EventType,
    StreamEvent,
    StreamHandle,
    StreamResponse,
    StreamTransport,
    start_read,
)
from narration_engine.chat.context import ChatRequest, SimulationContext
from narration_engine.chat.models import ChatMessage, ToolCallRecord, ToolCallStatus

logger = logging.getLogger(__name__)

SESSION_HEADER = "X-Session-Id"


class ChatSessionController:
    """Owns one chat transcript and at most one in-flight stream."""

    CHANNEL = "chat"

    def __init__(
        self,
        transport: StreamTransport,
        settings: Settings | None = None,
        hook: ObservabilityHook | None = None,
        on_change: Callable[[list[ChatMessage]], None] | None = None,
        map_context: str | None = None,
        team_context: str | None = None,
        session_id: str | None = None,
    ) -> None:
        """Initialize the controller.

        Args:
            transport: Transport for chat streams.
            settings: Engine settings (defaults to get_settings()).
            hook: Observability hook.
            on_change: Called with a copy of the transcript on every change.
            map_context: Map name sent with each message.
            team_context: Team name sent with each message.
            session_id: Existing collaborator session to continue.
        """
        self._transport = transport
        self._settings = settings or get_settings()
        self._hook: ObservabilityHook = hook or NullHook()
        self._on_change = on_change
        self.map_context = map_context
        self.team_context = team_context or self._settings.team_context

        self._messages: list[ChatMessage] = []
        self._session_id = session_id
        self._active_id: str | None = None
        self._handle: StreamHandle | None = None
        self._generation = 0
        self._stream_started = 0.0

    @property
    def messages(self) -> list[ChatMessage]:
        """Copy of the transcript in order."""
        return [m.copy() for m in self._messages]

    @property
    def is_streaming(self) -> bool:
        return self._active_id is not None

    @property
    def session_id(self) -> str | None:
        return self._session_id

    def send(self, text: str, context: SimulationContext | None = None) -> str | None:
        """Send a user message and stream the assistant's reply.

        The user message and an empty, streaming assistant message are added
        before this returns; the reply fills in as events arrive.

        Args:
            text: User message.
            context: Round excerpt for the collaborator.

        Returns:
            Id of the assistant message, or None if nothing was sent (blank
            text, or a send while streaming in non-strict mode).

        Raises:
            StateError: If a reply is still streaming (strict mode).
        """
        if not text or not text.strip():
            return None
        if self.is_streaming:
            report_misuse("send() while a reply is still streaming", self._settings.strict_state)
            return None

        self._release_stream()

        assistant = ChatMessage.assistant_placeholder()
        self._messages.append(ChatMessage.user(text))
        self._messages.append(assistant)
        self._active_id = assistant.id
        self._generation += 1
        generation = self._generation

        request = ChatRequest(
            message=text,
            session_id=self._session_id,
            map_context=self.map_context,
            team_context=self.team_context,
            use_tools=True,
            simulation_context=context,
        )
        reader = EventStreamReader(
            on_event=lambda event: self._on_event(generation, event),
            on_complete=lambda: self._on_stream_end(generation),
            on_error=lambda error: self._on_transport_error(generation, error),
            on_open=lambda response: self._on_open(generation, response),
            idle_timeout=self._settings.stream_idle_timeout,
        )

        endpoint = self._settings.chat_endpoint
        self._stream_started = time.perf_counter()
        self._hook.on_stream_opened(StreamOpenedEvent(channel=self.CHANNEL, endpoint=endpoint))
        self._handle = start_read(
            reader,
            self._transport,
            endpoint,
            request.model_dump(exclude_none=True),
            name="chat-stream",
        )
        self._notify()
        return assistant.id

    def stop(self) -> None:
        """Cancel the in-flight reply, keeping its partial content.

        A read still open after its reply finished is cancelled as well.
        """
        self._generation += 1
        self._release_stream()
        if not self.is_streaming:
            return
        self._finish(success=False, cancelled=True)
        logger.info("Chat stream stopped by caller")

    def clear(self) -> None:
        """Discard the transcript and the collaborator session id."""
        self.stop()
        self._messages.clear()
        self._session_id = None
        self._notify()

    async def wait(self) -> None:
        """Wait until the current reply is finished and its read is closed."""
        if self._handle is not None:
            await self._handle.wait()

    # =========================================================================
    # Stream handlers
    # =========================================================================

    def _find(self, message_id: str | None) -> ChatMessage | None:
        for message in reversed(self._messages):
            if message.id == message_id:
                return message
        return None

    def _active_message(self, generation: int) -> ChatMessage | None:
        if generation != self._generation or self._active_id is None:
            return None
        return self._find(self._active_id)

    def _on_open(self, generation: int, response: StreamResponse) -> None:
        if generation != self._generation:
            return
        session_id = response.headers.get(SESSION_HEADER)
        if session_id and not self._session_id:
            self._session_id = session_id
            logger.debug(f"Chat session {session_id}")

    def _on_event(self, generation: int, event: StreamEvent) -> None:
        message = self._active_message(generation)
        if message is None:
            logger.debug(f"Ignoring late chat event: {event.type.value}")
            return

        if event.type is EventType.TEXT:
            if event.data is None:
                return
            delta = str(event.data)
            message.content += delta
            self._hook.on_chat_token(ChatTokenEvent(message_id=message.id, token=delta))
        elif event.type is EventType.TOOL_START:
            if not event.tool_name:
                return
            message.tool_calls.append(ToolCallRecord(name=event.tool_name))
            self._hook.on_tool_call(
                ToolCallEvent(message_id=message.id, tool_name=event.tool_name, status="pending")
            )
        elif event.type is EventType.TOOL_RESULT:
            if not self._complete_tool_call(message, event.tool_name):
                return
        elif event.type is EventType.DONE:
            self._end_exchange(success=True)
            return
        elif event.type is EventType.ERROR:
            self._append_error(message, event.error_message)
            self._end_exchange(success=False, error=event.error_message)
            return
        else:
            logger.debug(f"Ignoring {event.type.value} event on chat stream")
            return
        self._notify()

    def _on_stream_end(self, generation: int) -> None:
        # Stream closed without a done event
        if self._active_message(generation) is not None:
            self._finish(success=True)

    def _on_transport_error(self, generation: int, error: TransportError) -> None:
        message = self._active_message(generation)
        if message is None:
            return
        self._append_error(message, str(error))
        self._finish(success=False, error=str(error))

    def _complete_tool_call(self, message: ChatMessage, tool_name: str | None) -> bool:
        for call in reversed(message.tool_calls):
            if call.name == tool_name and call.status is ToolCallStatus.PENDING:
                call.status = ToolCallStatus.COMPLETE
                self._hook.on_tool_call(
                    ToolCallEvent(message_id=message.id, tool_name=call.name, status="complete")
                )
                return True
        logger.debug(f"tool_result for {tool_name!r} without a pending call")
        return False

    def _end_exchange(self, success: bool, error: str | None = None) -> None:
        # The reply is complete; close the read even if the server keeps it open
        handle = self._handle
        self._finish(success=success, error=error)
        if handle is not None and not handle.done:
            handle.cancel()

    def _release_stream(self) -> None:
        if self._handle is not None and not self._handle.done:
            self._handle.cancel()

    @staticmethod
    def _append_error(message: ChatMessage, error: str) -> None:
        suffix = f"Error: {error or 'Unknown error'}"
        message.content = f"{message.content}\n\n{suffix}" if message.content else suffix

    def _finish(
        self, success: bool, cancelled: bool = False, error: str | None = None
    ) -> None:
        message = self._find(self._active_id)
        if message is not None:
            message.streaming = False
        self._active_id = None
        self._hook.on_stream_closed(
            StreamClosedEvent(
                channel=self.CHANNEL,
                duration_ms=(time.perf_counter() - self._stream_started) * 1000,
                success=success,
                cancelled=cancelled,
                error=error,
            )
        )
        self._notify()

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change(self.messages)
