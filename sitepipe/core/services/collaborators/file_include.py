"""
File include preprocessor — the template-inclusion collaborator.

Processes HTML sources with two mechanisms, both keyed on a configurable
prefix token (``@@`` by default):

  1. Includes:      @@include('../templates/_head.html', {page_title: "Home"})
  2. Variables:     @@language, @@viewport.mode, @@page_title

Include parameters are a YAML flow mapping, so both JSON and the
unquoted-key style (``{page_main: false}``) are accepted. Included files
see the caller's context merged with their own parameters.

Where include paths are resolved from is the ``basepath`` option:
``@file`` (relative to the including file), ``@root`` (the project
root) or an explicit directory.

Nothing else is supported: no conditionals, no loops.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from pathlib import Path
from typing import Any, Protocol

import yaml

logger = logging.getLogger(__name__)

MAX_INCLUDE_DEPTH = 20


class TemplateIncludeError(Exception):
    """Raised when an include cannot be resolved or parsed."""


class TemplateIncluder(Protocol):
    """Contract the markup stage relies on."""

    async def render(
        self,
        source: Path,
        dest: Path,
        *,
        prefix: str,
        basepath: str,
        context: dict[str, Any],
    ) -> Path: ...


class FileIncludeProcessor:
    """Default :class:`TemplateIncluder` — runs off the event loop thread."""

    def __init__(self, root: Path | None = None) -> None:
        self.root = (root or Path.cwd()).resolve()

    async def render(
        self,
        source: Path,
        dest: Path,
        *,
        prefix: str,
        basepath: str,
        context: dict[str, Any],
    ) -> Path:
        return await asyncio.to_thread(
            self.render_file, source, dest,
            prefix=prefix, basepath=basepath, context=context,
        )

    def render_file(
        self,
        source: Path,
        dest: Path,
        *,
        prefix: str,
        basepath: str,
        context: dict[str, Any],
    ) -> Path:
        try:
            text = source.read_text(encoding="utf-8")
        except OSError as e:
            raise TemplateIncludeError(f"Cannot read {source}: {e}") from e

        output = self.process(text, source, prefix=prefix, basepath=basepath, context=context)
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_text(output, encoding="utf-8")
        logger.debug("Included %s → %s", source, dest)
        return dest

    def process(
        self,
        text: str,
        source: Path,
        *,
        prefix: str,
        basepath: str,
        context: dict[str, Any],
        _depth: int = 0,
    ) -> str:
        """Expand includes, then substitute variables, in ``text``."""
        if _depth > MAX_INCLUDE_DEPTH:
            raise TemplateIncludeError(
                f"Include depth exceeded {MAX_INCLUDE_DEPTH} at {source} (recursive include?)"
            )

        head = re.compile(re.escape(prefix) + r"include\(\s*(['\"])(.+?)\1\s*")
        parts: list[str] = []
        pos = 0
        while True:
            m = head.search(text, pos)
            if m is None:
                break
            end, params_text = _parse_include_tail(text, m.end(), source)
            include_path = self._resolve(m.group(2), source, basepath)
            params = _parse_params(params_text, source) if params_text else {}

            try:
                included = include_path.read_text(encoding="utf-8")
            except OSError as e:
                raise TemplateIncludeError(
                    f"Include not found: {m.group(2)} (from {source})"
                ) from e

            parts.append(text[pos:m.start()])
            parts.append(self.process(
                included, include_path,
                prefix=prefix, basepath=basepath,
                context={**context, **params},
                _depth=_depth + 1,
            ))
            pos = end
        parts.append(text[pos:])

        return substitute_variables("".join(parts), prefix, context)

    def _resolve(self, name: str, source: Path, basepath: str) -> Path:
        if basepath == "@file":
            base = source.parent
        elif basepath == "@root":
            base = self.root
        else:
            base = Path(basepath)
            if not base.is_absolute():
                base = self.root / base
        return (base / name).resolve()


def substitute_variables(text: str, prefix: str, context: dict[str, Any]) -> str:
    """Replace ``{prefix}name`` / ``{prefix}a.b`` with context values.

    Unknown names are left untouched.
    """
    pattern = re.compile(re.escape(prefix) + r"([A-Za-z_]\w*(?:\.[A-Za-z_]\w*)*)")

    def _replace(m: re.Match) -> str:
        found, value = _lookup(context, m.group(1))
        if not found:
            return m.group(0)
        return _format_value(value)

    return pattern.sub(_replace, text)


def _lookup(context: dict[str, Any], dotted: str) -> tuple[bool, Any]:
    value: Any = context
    for key in dotted.split("."):
        if not isinstance(value, dict) or key not in value:
            return False, None
        value = value[key]
    return True, value


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def _parse_include_tail(text: str, pos: int, source: Path) -> tuple[int, str]:
    """Parse ``[, {params}] )`` after the include path.

    Returns the index just past the closing parenthesis and the raw
    parameter text (empty when there are no parameters).
    """
    params = ""
    if pos < len(text) and text[pos] == ",":
        pos = _skip_ws(text, pos + 1)
        if pos >= len(text) or text[pos] != "{":
            raise TemplateIncludeError(f"Expected '{{' after include path in {source}")
        close = _matching_brace(text, pos, source)
        params = text[pos:close + 1]
        pos = _skip_ws(text, close + 1)
    if pos >= len(text) or text[pos] != ")":
        raise TemplateIncludeError(f"Unterminated include in {source}")
    return pos + 1, params


def _skip_ws(text: str, pos: int) -> int:
    while pos < len(text) and text[pos].isspace():
        pos += 1
    return pos


def _matching_brace(text: str, start: int, source: Path) -> int:
    depth = 0
    quote = ""
    i = start
    while i < len(text):
        ch = text[i]
        if quote:
            if ch == "\\":
                i += 2
                continue
            if ch == quote:
                quote = ""
        elif ch in ("'", '"'):
            quote = ch
        elif ch in "{[":
            depth += 1
        elif ch in "}]":
            depth -= 1
            if depth == 0:
                return i
        i += 1
    raise TemplateIncludeError(f"Unbalanced include parameters in {source}")


def _parse_params(params_text: str, source: Path) -> dict[str, Any]:
    try:
        params = yaml.safe_load(params_text)
    except yaml.YAMLError as e:
        raise TemplateIncludeError(f"Invalid include parameters in {source}: {e}") from e
    if params is None:
        return {}
    if not isinstance(params, dict):
        raise TemplateIncludeError(
            f"Include parameters must be a mapping in {source}, got {type(params).__name__}"
        )
    return params
