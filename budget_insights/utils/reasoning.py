"""
Generative reasoning service client.

A session is started with a system prompt and prior turns; each message returns
a pull-based, cancellable stream of text chunks. ``next()`` yields the next
chunk, ``None`` once the stream has ended, and raises ``ExternalServiceError``
when the service fails mid-stream.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, List, Optional

from google import genai
from google.genai import errors, types

from budget_insights.core.config import settings
from budget_insights.core.errors import ExternalServiceError

logger = logging.getLogger(__name__)


@dataclass
class Turn:
    role: str  # "user" or "model"
    text: str


class ChunkStream(ABC):
    @abstractmethod
    async def next(self) -> Optional[str]:
        ...

    @abstractmethod
    async def cancel(self) -> None:
        ...


class ReasoningSession(ABC):
    @abstractmethod
    async def send_message(self, text: str) -> ChunkStream:
        ...


class ReasoningService(ABC):
    @abstractmethod
    def start_session(self, system_prompt: str, prior_turns: List[Turn]) -> ReasoningSession:
        ...


class GeminiChunkStream(ChunkStream):
    def __init__(self, responses: Any) -> None:
        self._iterator = responses.__aiter__()
        self._closed = False

    async def next(self) -> Optional[str]:
        while not self._closed:
            try:
                chunk = await self._iterator.__anext__()
            except StopAsyncIteration:
                self._closed = True
                return None
            except errors.APIError as e:
                self._closed = True
                logger.error(f"Gemini stream failed: {e}")
                raise ExternalServiceError(f"Reasoning service stream failed: {e}") from e
            # chunks without text (e.g. safety metadata) carry nothing to keep
            if chunk.text:
                return chunk.text
        return None

    async def cancel(self) -> None:
        if self._closed:
            return
        self._closed = True
        aclose = getattr(self._iterator, "aclose", None)
        if aclose is not None:
            await aclose()


class GeminiSession(ReasoningSession):
    def __init__(self, chat: Any) -> None:
        self._chat = chat

    async def send_message(self, text: str) -> ChunkStream:
        try:
            responses = await self._chat.send_message_stream(text)
        except errors.APIError as e:
            logger.error(f"Gemini request failed: {e}")
            raise ExternalServiceError(f"Reasoning service request failed: {e}") from e
        return GeminiChunkStream(responses)


class GeminiReasoningService(ReasoningService):
    def __init__(
        self,
        api_key: Optional[str] = settings.GEMINI_API_KEY,
        model: str = settings.GEMINI_MODEL,
        client: Optional[genai.Client] = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._client = client

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            try:
                self._client = genai.Client(api_key=self._api_key)
            except ValueError as e:
                raise ExternalServiceError(f"Reasoning service is not configured: {e}") from e
        return self._client

    def start_session(self, system_prompt: str, prior_turns: List[Turn]) -> ReasoningSession:
        history = [
            types.Content(role=turn.role, parts=[types.Part(text=turn.text)])
            for turn in prior_turns
        ]
        chat = self.client.aio.chats.create(
            model=self._model,
            config=types.GenerateContentConfig(system_instruction=system_prompt),
            history=history,
        )
        logger.info(f"Started {self._model} session with {len(history)} prior turns")
        return GeminiSession(chat)
