"""Request/result types shared by the image client and the page flow."""
from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum

LOGGER = logging.getLogger("levelup.schema")


@dataclass(frozen=True)
class GenerationRequest:
    """Prompt plus output configuration sent to the image model."""
    prompt: str
    number_of_images: int = 1
    output_mime_type: str = "image/png"
    aspect_ratio: str = "1:1"


@dataclass(frozen=True)
class GeneratedImage:
    """One image returned by the model, still base64 encoded."""
    image_bytes: str
    mime_type: str = "image/png"

    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.image_bytes}"


class ResultState(str, Enum):
    PENDING = "pending"
    AVAILABLE = "available"
    FAILED = "failed"


@dataclass
class GenerationResult:
    """
    Outcome slot for one generation request.

    Starts pending and settles exactly once, either available (with an
    embeddable data URL) or failed. Later transitions are ignored.
    """
    name: str
    state: ResultState = ResultState.PENDING
    data_url: str | None = None
    error: str | None = None
    _settled: asyncio.Event = field(default_factory=asyncio.Event, init=False, repr=False, compare=False)

    @property
    def is_terminal(self) -> bool:
        return self.state is not ResultState.PENDING

    def mark_available(self, data_url: str) -> bool:
        """
        Settle the slot with an image.

        Args:
            data_url: Non-empty `data:` URL for the image.

        Returns:
            True if this call performed the transition.
        """
        if not data_url:
            raise ValueError("data_url must be non-empty")
        if self.is_terminal:
            LOGGER.debug("Ignoring late success for %s (already %s)", self.name, self.state.value)
            return False
        # Payload before state, so a reader that sees AVAILABLE always sees the image.
        self.data_url = data_url
        self.state = ResultState.AVAILABLE
        self._settled.set()
        return True

    def mark_failed(self, error: str) -> bool:
        """Settle the slot as failed. Returns True if this call performed the transition."""
        if self.is_terminal:
            LOGGER.debug("Ignoring late failure for %s (already %s)", self.name, self.state.value)
            return False
        self.error = error
        self.state = ResultState.FAILED
        self._settled.set()
        return True

    async def wait(self) -> ResultState:
        await self._settled.wait()
        return self.state
