"""Image acquisition flow for one page load.

A PageSession owns one GenerationResult per image slot. `start()` spawns one
task per slot back-to-back; nothing joins them. Each task settles only its
own slot, and a failure is logged, never raised.
"""
from __future__ import annotations
import asyncio
import logging
import time
import uuid
from collections import OrderedDict
from typing import Awaitable, Callable

from levelup_site.common.schema import GeneratedImage, GenerationRequest, GenerationResult
from levelup_site.imagen import client as imagen_client
from levelup_site.page.content import IMAGE_SLOTS

LOGGER = logging.getLogger("levelup.site.flow")

Generator = Callable[[GenerationRequest], Awaitable[list[GeneratedImage]]]

# Strong references so the event loop does not drop in-flight flows.
_BACKGROUND_TASKS: set[asyncio.Task[None]] = set()


async def acquire(result: GenerationResult, request: GenerationRequest, generate: Generator) -> None:
    """Run one generation call and settle `result` with its outcome."""
    start = time.time()
    try:
        images = await generate(request)
        if not images:
            raise imagen_client.GenerationError("Imagen returned no images")
        data_url = images[0].data_url()
    except imagen_client.GenerationError as e:
        LOGGER.error("Failed to generate %s: %s", result.name, e)
        result.mark_failed(str(e))
        return
    except Exception as e:
        LOGGER.exception("Unexpected error generating %s", result.name)
        result.mark_failed(f"{type(e).__name__}: {e}")
        return

    if result.mark_available(data_url):
        LOGGER.info("Generated %s in %dms", result.name, int((time.time() - start) * 1000))


class PageSession:
    """Result slots for a single page load."""

    def __init__(self, requests: dict[str, GenerationRequest], session_id: str | None = None) -> None:
        self.id = session_id or uuid.uuid4().hex
        self.requests = dict(requests)
        self.results = {name: GenerationResult(name=name) for name in self.requests}
        self._started = False

    @property
    def logo(self) -> GenerationResult:
        return self.results["logo"]

    @property
    def illustration(self) -> GenerationResult:
        return self.results["illustration"]

    def start(self, generate: Generator | None = None) -> list[asyncio.Task[None]]:
        """
        Spawn one acquisition task per slot without awaiting any of them.

        Must be called from a running event loop. A second call is a no-op.
        """
        if self._started:
            return []
        self._started = True
        generate = generate or imagen_client.generate_images

        tasks = []
        for name, request in self.requests.items():
            task = asyncio.create_task(acquire(self.results[name], request, generate), name=f"{self.id}:{name}")
            _BACKGROUND_TASKS.add(task)
            task.add_done_callback(_BACKGROUND_TASKS.discard)
            tasks.append(task)
        return tasks

    def status(self) -> dict[str, dict[str, object]]:
        return {
            name: {"state": r.state.value, "available": r.data_url is not None}
            for name, r in self.results.items()
        }


def default_requests(images: dict) -> dict[str, GenerationRequest]:
    return {slot: images[slot].request for slot in IMAGE_SLOTS}


class SessionStore:
    """In-memory page sessions; the oldest is evicted past `max_sessions`."""

    def __init__(self, max_sessions: int = 256) -> None:
        self.max_sessions = max(1, max_sessions)
        self._sessions: OrderedDict[str, PageSession] = OrderedDict()

    def add(self, session: PageSession) -> PageSession:
        self._sessions[session.id] = session
        while len(self._sessions) > self.max_sessions:
            evicted, _ = self._sessions.popitem(last=False)
            LOGGER.debug("Evicted page session %s", evicted)
        return session

    def discard(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    def get(self, session_id: str) -> PageSession | None:
        return self._sessions.get(session_id)

    def __len__(self) -> int:
        return len(self._sessions)
