"""Site copy and image prompts loaded from YAML."""
from __future__ import annotations
import os
from dataclasses import dataclass
from typing import Any

import yaml

from levelup_site.common.schema import GenerationRequest

IMAGE_SLOTS = ("logo", "illustration")


@dataclass(frozen=True)
class ImageSpec:
    alt: str
    request: GenerationRequest


@dataclass(frozen=True)
class SiteContent:
    company_name: str
    tagline: str
    about_heading: str
    about_paragraphs: list[str]
    services: list[dict[str, str]]
    features: list[dict[str, str]]
    contact: list[dict[str, str]]
    images: dict[str, ImageSpec]


def load_cfg(path: str) -> dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _require(cfg: dict[str, Any], key: str) -> Any:
    if key not in cfg or cfg[key] in (None, ""):
        raise ValueError(f"Site config missing required key: {key}")
    return cfg[key]


def load_site_content(path: str | None = None) -> SiteContent:
    """
    Build SiteContent from the YAML site config.

    Args:
        path: Config path. Defaults to $SITE_CONFIG or configs/site.yaml.

    Every image slot gets a request for exactly one square PNG.
    """
    cfg = load_cfg(path or os.getenv("SITE_CONFIG", "configs/site.yaml"))
    about = cfg.get("about") or {}
    images_cfg = _require(cfg, "images")

    images = {}
    for slot in IMAGE_SLOTS:
        if slot not in images_cfg:
            raise ValueError(f"Site config missing image prompt for: {slot}")
        entry = images_cfg[slot]
        images[slot] = ImageSpec(
            alt=str(entry.get("alt", "")),
            request=GenerationRequest(prompt=str(_require(entry, "prompt")).strip()),
        )

    return SiteContent(
        company_name=str(_require(cfg, "company_name")),
        tagline=str(cfg.get("tagline", "")),
        about_heading=str(about.get("heading", "")),
        about_paragraphs=[str(p) for p in about.get("paragraphs", []) or []],
        services=list(cfg.get("services", []) or []),
        features=list(cfg.get("features", []) or []),
        contact=list(cfg.get("contact", []) or []),
        images=images,
    )
