"""
Page scaffold — generate a new page document wired to the shared includes.

The generated file lives in the page source directory and pulls in the
``_head``, ``_header``, ``_footer`` and ``_script`` templates from
``{src}/templates`` so it builds like every other page.
"""

from __future__ import annotations

import html
import json
import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path

from sitepipe.core.models.config import BuildConfig

logger = logging.getLogger(__name__)

_SLUG_RE = re.compile(r"^[a-z0-9][a-z0-9_-]*$")


class PageExistsError(Exception):
    """The target page document already exists."""


@dataclass
class PageSpec:
    name: str
    title: str = ""
    description: str = ""
    breadcrumb: bool = False

    def __post_init__(self) -> None:
        if not _SLUG_RE.match(self.name):
            raise ValueError(
                f"Invalid page name '{self.name}': use lowercase letters, digits, '-' and '_'"
            )
        self.title = self.title or self.name.replace("-", " ").replace("_", " ").title()
        self.description = self.description or f"{self.title} page"


def page_path(config: BuildConfig, name: str) -> Path:
    return config.html_src / f"{name}.html"


def render_page(config: BuildConfig, spec: PageSpec) -> str:
    """Render the source document for a new page."""
    prefix = config.build.html.prefix
    templates = Path(os.path.relpath(config.src_dir / "templates", config.html_src)).as_posix()
    url = f"{config.pages_alias}/{spec.name}.html"

    head_params = [
        "page_main: false",
        f"page_name: {json.dumps(spec.name)}",
        f"page_title: {json.dumps(spec.title, ensure_ascii=False)}",
        f"page_description: {json.dumps(spec.description, ensure_ascii=False)}",
        f"page_url: {json.dumps(url)}",
    ]
    header_params = [f"page_name: {json.dumps(spec.name)}"]
    if spec.breadcrumb:
        crumb = (
            "breadcrumb: [\n"
            f"        {{ title: {json.dumps(spec.title, ensure_ascii=False)}, url: {json.dumps(url)} }}\n"
            "      ]"
        )
        head_params.append(crumb)
        header_params.append(crumb)

    def include(name: str, params: list[str] | None, indent: str) -> str:
        target = f"'{templates}/{name}'"
        if not params:
            return f"{indent}{prefix}include({target})"
        body = f",\n{indent}  ".join(params)
        return f"{indent}{prefix}include({target}, {{\n{indent}  {body}\n{indent}}})"

    title = html.escape(spec.title)
    description = html.escape(spec.description)
    return "\n".join([
        "<!DOCTYPE html>",
        f'<html lang="{prefix}language">',
        "  <head>",
        include("_head.html", head_params, "    "),
        "  </head>",
        "  <body>",
        '    <div id="root">',
        include("_header.html", header_params, "      "),
        "",
        '      <main class="layout__content" id="main" role="main">',
        '        <div class="container">',
        f"          <h1>{title}</h1>",
        f'          <p class="lead">{description}</p>',
        '          <div class="content">',
        "          </div>",
        "        </div>",
        "      </main>",
        "",
        include("_footer.html", None, "      "),
        "    </div>",
        "",
        include("_script.html", None, "    "),
        "  </body>",
        "</html>",
        "",
    ])


def create_page(config: BuildConfig, spec: PageSpec, *, overwrite: bool = False) -> Path:
    """Write the new page document and return its path.

    Raises:
        PageExistsError: the file exists and ``overwrite`` is False.
    """
    path = page_path(config, spec.name)
    if path.exists() and not overwrite:
        raise PageExistsError(f"Page already exists: {path}")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_page(config, spec), encoding="utf-8")
    logger.info("Created page %s", path)
    return path
