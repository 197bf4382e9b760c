"""Markup for the page and for the regions that depend on generated images."""
from __future__ import annotations
import datetime as dt
from html import escape

from levelup_site.common.schema import GenerationResult
from levelup_site.common.templates import render_template
from levelup_site.page.content import SiteContent
from levelup_site.page.flow import PageSession

# region id -> image slot it depends on
REGIONS = {
    "header-logo": "logo",
    "hero": "logo",
    "about-image": "illustration",
}

def regions_for(slot: str) -> list[str]:
    return [region for region, s in REGIONS.items() if s == slot]

def _img(result: GenerationResult, alt: str, css_class: str) -> str:
    return f'<img src="{escape(result.data_url or "")}" alt="{escape(alt)}" class="{css_class}">'

def render_region(region: str, session: PageSession, content: SiteContent) -> str:
    """Inner markup of one region, placeholder unless its image is available."""
    slot = REGIONS[region]
    result = session.results[slot]
    alt = content.images[slot].alt
    ready = result.data_url is not None

    if region == "header-logo":
        return _img(result, alt, "logo-img") if ready else '<div class="logo-placeholder"></div>'
    if region == "hero":
        if ready:
            return _img(result, alt, "hero-logo-img")
        return f'<h1 id="hero-heading" class="visually-hidden">{escape(content.company_name)}</h1>'
    if region == "about-image":
        return _img(result, alt, "about-image") if ready else '<div class="image-placeholder"></div>'
    raise KeyError(region)

def _items(items: list[dict[str, str]], css_class: str, card: bool = False) -> str:
    cls = f"card {css_class}" if card else css_class
    return "\n".join(
        f'<div class="{cls}"><i class="{escape(i.get("icon", ""))}"></i>'
        f'<div><h4>{escape(i.get("title", ""))}</h4><p>{escape(i.get("text", ""))}</p></div></div>'
        for i in items
    )

def _contact(items: list[dict[str, str]]) -> str:
    lines = []
    for i in items:
        value = escape(i.get("value", ""))
        if i.get("href"):
            value = f'<a href="{escape(i["href"])}">{value}</a>'
        lines.append(
            f'<li><i class="{escape(i.get("icon", ""))}"></i> '
            f'<strong>{escape(i.get("label", ""))}:</strong> <span>{value}</span></li>'
        )
    return "\n".join(lines)

def render_page(template: str, session: PageSession, content: SiteContent, year: int | None = None) -> str:
    """
    Render the full page for a session.

    Args:
        template: Page template with {{name}} placeholders.
        session: Session whose results fill the image regions.
        content: Site copy.
        year: Footer year; defaults to the current year.
    """
    regions = {
        region.replace("-", "_"): render_region(region, session, content)
        for region in REGIONS
    }
    return render_template(
        template,
        session_id=escape(session.id),
        company_name=escape(content.company_name),
        tagline=escape(content.tagline),
        about_heading=escape(content.about_heading),
        about_paragraphs="\n".join(f"<p>{escape(p)}</p>" for p in content.about_paragraphs),
        services=_items(content.services, "service-item"),
        features=_items(content.features, "feature-item", card=True),
        contact=_contact(content.contact),
        year=str(year or dt.date.today().year),
        **regions,
    )
