"""FastAPI app serving the LevelUp Construction page.

Endpoints:
- GET /                                   page with placeholders; starts both image flows
- GET /health
- GET /sessions/{session_id}              state of both image slots
- GET /sessions/{session_id}/regions/{r}  current markup of one image region
- GET /sessions/{session_id}/events       SSE, one event per region as its image settles
"""
from __future__ import annotations
import asyncio
import json
import logging
import os
from functools import lru_cache
from typing import AsyncIterator

from dotenv import find_dotenv, load_dotenv

# Before any levelup_site import: the Imagen client reads its settings at import.
load_dotenv(find_dotenv(usecwd=True))

from fastapi import FastAPI, HTTPException
from fastapi.responses import HTMLResponse, StreamingResponse
from pydantic import BaseModel

from levelup_site.common.logging_setup import setup_logging
from levelup_site.common.templates import load_template, template_fields
from levelup_site.imagen.client import IMAGEN_MODEL, get_api_key
from levelup_site.page.content import SiteContent, load_site_content
from levelup_site.page.flow import PageSession, SessionStore, default_requests
from levelup_site.page.render import REGIONS, regions_for, render_page, render_region

LOGGER = logging.getLogger("levelup.site.app")
setup_logging()

MAX_PAGE_SESSIONS = int(os.getenv("MAX_PAGE_SESSIONS", "256"))
REQUIRED_FIELDS = {"session_id", "header_logo", "hero", "about_image"}

STORE = SessionStore(MAX_PAGE_SESSIONS)

class SlotStatus(BaseModel):
    state: str
    available: bool

class SessionOut(BaseModel):
    session_id: str
    images: dict[str, SlotStatus]

class RegionOut(BaseModel):
    region: str
    state: str
    html: str

app = FastAPI(title="LevelUp Construction")

@lru_cache(maxsize=1)
def page_assets() -> tuple[SiteContent, str]:
    """Site content and page template, read from disk once per process."""
    return load_site_content(), load_template()

@app.on_event("startup")
def _validate_on_startup() -> None:
    """Load config and template, check the API key, and warn if anything is off."""
    if not get_api_key():
        LOGGER.warning("API_KEY is not set; generated images will stay as placeholders")
    try:
        _, template = page_assets()
        missing = REQUIRED_FIELDS - template_fields(template)
        if missing:
            LOGGER.warning("Page template missing placeholders: %s", ", ".join(sorted(missing)))
    except Exception as e:
        LOGGER.warning("Failed to read site config or page template: %s", e)

@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok", "model": IMAGEN_MODEL}

@app.get("/", response_class=HTMLResponse)
async def index() -> HTMLResponse:
    content, template = page_assets()
    session = STORE.add(PageSession(default_requests(content.images)))
    # Render before starting so the first paint never waits on either call.
    body = render_page(template, session, content)
    session.start()
    LOGGER.info("Page session %s started", session.id)
    return HTMLResponse(body, headers={"X-Page-Session": session.id})

def _get_session(session_id: str) -> PageSession:
    session = STORE.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Unknown page session")
    return session

@app.get("/sessions/{session_id}", response_model=SessionOut)
def session_status(session_id: str) -> SessionOut:
    session = _get_session(session_id)
    return SessionOut(
        session_id=session.id,
        images={name: SlotStatus(**s) for name, s in session.status().items()},
    )

@app.get("/sessions/{session_id}/regions/{region}", response_model=RegionOut)
def region(session_id: str, region: str) -> RegionOut:
    session = _get_session(session_id)
    if region not in REGIONS:
        raise HTTPException(status_code=404, detail="Unknown region")
    content, _ = page_assets()
    return RegionOut(
        region=region,
        state=session.results[REGIONS[region]].state.value,
        html=render_region(region, session, content),
    )

async def _region_events(session: PageSession, store: SessionStore | None = None) -> AsyncIterator[str]:
    """
    Yield one SSE `region` event per dependent region as each slot settles.

    Once every slot has settled the session is dropped from `store`, which
    releases its image payloads; the page already holds the final markup.
    """
    content, _ = page_assets()
    waiters = {asyncio.ensure_future(result.wait()): name for name, result in session.results.items()}
    try:
        while waiters:
            done, _ = await asyncio.wait(set(waiters), return_when=asyncio.FIRST_COMPLETED)
            for fut in done:
                slot = waiters.pop(fut)
                for name in regions_for(slot):
                    msg = {
                        "region": name,
                        "state": session.results[slot].state.value,
                        "html": render_region(name, session, content),
                    }
                    yield f"event: region\ndata: {json.dumps(msg)}\n\n"
        if store is not None:
            store.discard(session.id)
        yield "event: done\ndata: [DONE]\n\n"
    finally:
        for fut in waiters:
            fut.cancel()

@app.get("/sessions/{session_id}/events")
def region_events(session_id: str) -> StreamingResponse:
    session = _get_session(session_id)
    return StreamingResponse(_region_events(session, STORE), media_type="text/event-stream")
