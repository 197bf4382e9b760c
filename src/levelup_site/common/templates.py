"""Page templating helpers."""
from __future__ import annotations
import os
import re
from pathlib import Path

PLACEHOLDER_RE = re.compile(r"\{\{\s*(\w+)\s*\}\}")

def load_template(path: str | None = None) -> str:
    """
    Load a page template file.

    Args:
        path: Path to template. Defaults to $PAGE_TEMPLATE or configs/page_template.html.
    """
    path = path or os.getenv("PAGE_TEMPLATE", "configs/page_template.html")
    return Path(path).read_text(encoding="utf-8")

def template_fields(template: str) -> set[str]:
    """Return the placeholder names used in a template."""
    return set(PLACEHOLDER_RE.findall(template))

def render_template(template: str, **values: str) -> str:
    """
    Render values into the template.

    Args:
        template: Template content containing {{name}} placeholders.
        values: Already-escaped markup keyed by placeholder name.

    Returns:
        Rendered markup. Unknown placeholders raise KeyError.
    """
    def _sub(match: re.Match[str]) -> str:
        return str(values[match.group(1)])

    return PLACEHOLDER_RE.sub(_sub, template)
