"""
Site routes — serves the build output tree.

  GET /                     → {dist}/{index}
  GET /<path:filepath>      → the file, or <dir>/index.html for directories

HTML responses get the live-reload client injected before ``</body>``
when live reload is on.
"""

from __future__ import annotations

import mimetypes
from pathlib import Path

from flask import Blueprint, Response, abort, current_app, send_file
from werkzeug.security import safe_join

site_bp = Blueprint("site", __name__)

RELOAD_SCRIPT_URL = "/__sitepipe/reload.js"
EVENTS_URL = "/__sitepipe/events"


def reload_snippet(notify: bool) -> str:
    return (
        f'<script src="{RELOAD_SCRIPT_URL}" data-endpoint="{EVENTS_URL}"'
        f' data-notify="{"true" if notify else "false"}"></script>'
    )


def inject_reload_client(html: str, notify: bool = False) -> str:
    """Insert the reload client before the last ``</body>`` (or append)."""
    snippet = reload_snippet(notify)
    idx = html.lower().rfind("</body>")
    if idx == -1:
        return html + snippet
    return html[:idx] + snippet + html[idx:]


def _serve(path: Path):  # type: ignore[no-untyped-def]
    mime = mimetypes.guess_type(str(path))[0] or "application/octet-stream"
    if mime == "text/html" and current_app.config["LIVE_RELOAD"]:
        text = path.read_text(encoding="utf-8", errors="replace")
        body = inject_reload_client(text, current_app.config["NOTIFY"])
        return Response(body, mimetype="text/html", headers={"Cache-Control": "no-store"})
    response = send_file(path, mimetype=mime, max_age=0)
    response.headers["Cache-Control"] = "no-store"
    return response


@site_bp.route("/")
@site_bp.route("/<path:filepath>")
def serve_site(filepath: str = ""):  # type: ignore[no-untyped-def]
    """Serve a file from the output tree."""
    dist = Path(current_app.config["DIST_DIR"])
    if not dist.is_dir():
        abort(404, description="No build output yet. Run a build first.")

    joined = safe_join(str(dist), filepath) if filepath else str(dist)
    if joined is None:
        abort(404)
    requested = Path(joined)

    if requested.is_file():
        return _serve(requested)

    if requested.is_dir():
        index = requested / current_app.config["INDEX_DOCUMENT"]
        if index.is_file():
            return _serve(index)

    abort(404, description=f"File not found: {filepath}")
