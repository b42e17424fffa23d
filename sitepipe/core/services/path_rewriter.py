"""
Path rewriter — stateless text transforms between URL representations.

The same asset or page reference can be written three ways:

  short      images/a.png          contact.html
  absolute   /assets/images/a.png  /html/contact.html
  relative   ./assets/images/a.png (root document)
             ../assets/images/a.png (page document)

``to_absolute`` targets the dev server (root-relative URLs);
``to_relative`` targets direct file access (no server).

Rewriting is regex-based and ORDER MATTERS: every rule list below is an
ordered tuple applied front to back. Short-alias normalization always
runs first, because the legacy-relative rules are written against the
un-aliased form and must not match output the alias rules produced.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from sitepipe.core.models.build import FileLocation

logger = logging.getLogger(__name__)

# References starting with any of these are never rewritten.
ABSOLUTE_PREFIXES = ("/", "http://", "https://", "data:", "var(")

# Custom property marking inline styles whose url() must follow the CSS.
ICON_URL_PROPERTY = "--icon-url"

# Short-path directories that map onto the assets alias.
_SHORT_DIRS = ("images", "css", "js", "fonts")

_STYLE_ATTR_RE = re.compile(r"""style\s*=\s*"([^"]*)"|style\s*=\s*'([^']*)'""", re.IGNORECASE)
_STYLE_URL_RE = re.compile(r"""url\s*\(\s*["']?([^"')]+)["']?\s*\)""", re.IGNORECASE)

# Attribute names must not be the tail of a longer name (data-href, ...).
_ATTR = r"(?<![\w-])"


@dataclass(frozen=True)
class RewriteRule:
    """One ordered substitution: compiled pattern plus replacement."""

    pattern: re.Pattern[str]
    replacement: str | Callable[[re.Match[str]], str]

    def apply(self, content: str) -> str:
        return self.pattern.sub(self.replacement, content)


def rule(pattern: str, replacement: str) -> RewriteRule:
    return RewriteRule(re.compile(pattern), replacement)


def apply_rules(content: str, rules: tuple[RewriteRule, ...]) -> str:
    """Run ``rules`` over ``content`` in declaration order."""
    for r in rules:
        content = r.apply(content)
    return content


def is_absolute_reference(ref: str) -> bool:
    return ref.startswith(ABSOLUTE_PREFIXES)


def _literal(text: str) -> str:
    """Escape text for use inside a replacement template."""
    return text.replace("\\", "\\\\")


class PathRewriter:
    """Rewrites href/src/url() references for one site configuration.

    Args:
        assets_alias: URL prefix of the assets output (``/assets``).
        pages_alias: URL prefix of the page documents (``/html``).
        favicon: Favicon filename, served from the output root.
        index_document: Root document filename.
        style_output_dir: Compiled style-sheet directory; inline
            ``--icon-url`` references are made relative to it.
        source_mirrors: ``(output dir or file, source)`` pairs. An inline
            reference into a mirrored output is checked against its
            source, which exists before any stage writes the output.
    """

    def __init__(
        self,
        assets_alias: str = "/assets",
        pages_alias: str = "/html",
        *,
        favicon: str = "favicon.svg",
        index_document: str = "index.html",
        style_output_dir: Path | None = None,
        source_mirrors: tuple[tuple[Path, Path], ...] = (),
    ) -> None:
        self.assets_alias = assets_alias.rstrip("/")
        self.pages_alias = pages_alias.rstrip("/")
        self.favicon = favicon
        self.index_document = index_document
        self.style_output_dir = style_output_dir
        self.source_mirrors = tuple(source_mirrors)

        self._short = self._short_alias_rules()
        self._page_links = (
            rule(_ATTR + r'href="([^/"]+\.html)"', f'href="{_literal(self.pages_alias)}/\\1"'),
        )
        self._legacy = self._legacy_rules()
        self._absolute_root = self._absolute_root_rules()
        self._absolute_page = self._absolute_page_rules()
        self._relative_root = self._relative_rules("./", fold_parent_assets=True)
        self._relative_page = self._relative_rules("../", fold_parent_assets=False)
        self._strip_crossorigin = (
            rule(r'\s+crossorigin="anonymous"', ""),
            rule(r"\s+crossorigin='anonymous'", ""),
        )

    @classmethod
    def from_config(cls, config) -> PathRewriter:
        """Build a rewriter from a :class:`BuildConfig`."""
        return cls(
            config.assets_alias,
            config.pages_alias,
            favicon=config.files.favicon,
            index_document=config.files.html.index,
            style_output_dir=config.styles_dest,
            source_mirrors=(
                (config.public_dest / "img", config.public_src / "img"),
                (config.public_dest / "fonts", config.public_src / "fonts"),
                (config.dist_dir / config.files.favicon, config.public_src / config.files.favicon),
            ),
        )

    # ── Public transforms ───────────────────────────────────────

    def to_absolute(
        self,
        content: str,
        location: FileLocation,
        source_file: Path | None = None,
    ) -> str:
        """Rewrite short and relative references to alias-prefixed absolute form.

        When ``source_file`` (the document's own path) is given, relative
        ``url()`` references inside ``--icon-url`` inline styles are
        recomputed against the style output directory as well.
        """
        content = self._normalize_short(content, location)
        content = apply_rules(content, self._legacy)
        if location == FileLocation.ROOT:
            content = apply_rules(content, self._absolute_root)
        else:
            content = apply_rules(content, self._absolute_page)
        if source_file is not None:
            content = self.rewrite_inline_style_urls(content, source_file)
        return content

    def to_relative(self, content: str, location: FileLocation) -> str:
        """Rewrite references to depth-relative form for direct file access."""
        content = self._normalize_short(content, location)
        if location == FileLocation.ROOT:
            content = apply_rules(content, self._relative_root)
        else:
            content = apply_rules(content, self._relative_page)
        return apply_rules(content, self._strip_crossorigin)

    def to_relative_css(self, content: str, css_dir: Path, assets_dir: Path) -> str:
        """Rewrite ``url(/assets/...)`` in a compiled style-sheet.

        The prefix is the path from ``css_dir`` to ``assets_dir`` (the
        directory the assets alias stands for); the quote style of each
        ``url()`` is kept as written.
        """
        prefix = Path(os.path.relpath(assets_dir, css_dir)).as_posix().rstrip("/") + "/"
        pattern = re.compile(r"""url\(\s*(["']?)""" + re.escape(self.assets_alias) + "/")
        return pattern.sub(lambda m: f"url({m.group(1)}{prefix}", content)

    # ── Inline style url() rewriting ────────────────────────────

    def rewrite_inline_style_urls(self, content: str, source_file: Path) -> str:
        if self.style_output_dir is None:
            return content
        document_dir = Path(source_file).parent
        css_dir = self.style_output_dir

        def _replace_attr(m: re.Match[str]) -> str:
            quote = '"' if m.group(1) is not None else "'"
            style = m.group(1) if m.group(1) is not None else m.group(2)
            if ICON_URL_PROPERTY not in style:
                return m.group(0)

            rewritten = style
            for url_match in _STYLE_URL_RE.finditer(style):
                ref = url_match.group(1).strip()
                if is_absolute_reference(ref):
                    continue
                target = Path(os.path.normpath(document_dir / ref))
                if not self.reference_exists(target):
                    continue
                relative = Path(os.path.relpath(target, css_dir)).as_posix()
                if not relative.startswith(("./", "../")):
                    relative = "./" + relative
                whole = url_match.group(0)
                rewritten = rewritten.replace(whole, whole.replace(ref, relative, 1))

            if rewritten == style:
                return m.group(0)
            logger.info("Converted inline style URL: %.50s → %.50s", style, rewritten)
            return f"style={quote}{rewritten}{quote}"

        return _STYLE_ATTR_RE.sub(_replace_attr, content)

    def reference_exists(self, target: Path) -> bool:
        """Whether an output path exists or will once its mirror is copied."""
        for output, source in self.source_mirrors:
            if target == output or output in target.parents:
                return (source / target.relative_to(output)).exists()
        return target.exists()

    # ── Rule tables ─────────────────────────────────────────────

    def _normalize_short(self, content: str, location: FileLocation) -> str:
        content = apply_rules(content, self._short)
        if location == FileLocation.PAGE:
            content = apply_rules(content, self._page_links)
        return content

    def _short_alias_rules(self) -> tuple[RewriteRule, ...]:
        assets = _literal(self.assets_alias)
        favicon = re.escape(self.favicon)
        rules = [
            rule(_ATTR + rf'(href|src)="{d}/', rf'\1="{assets}/{d}/')
            for d in _SHORT_DIRS
        ]
        rules.append(rule(_ATTR + rf'(href|src)="{favicon}"', rf'\1="/{_literal(self.favicon)}"'))
        return tuple(rules)

    def _legacy_rules(self) -> tuple[RewriteRule, ...]:
        assets = _literal(self.assets_alias)
        assets_dir = re.escape(self.assets_alias.lstrip("/"))
        favicon = re.escape(self.favicon)
        return (
            rule(_ATTR + rf'href="\.\./{assets_dir}/', f'href="{assets}/'),
            rule(_ATTR + rf'src="\.\./{assets_dir}/', f'src="{assets}/'),
            rule(_ATTR + rf'href="\.\./{favicon}"', f'href="/{_literal(self.favicon)}"'),
            rule(_ATTR + r'href="\.\./fonts/', f'href="{assets}/fonts/'),
        )

    def _absolute_root_rules(self) -> tuple[RewriteRule, ...]:
        assets = _literal(self.assets_alias)
        pages = _literal(self.pages_alias)
        assets_dir = re.escape(self.assets_alias.lstrip("/"))
        pages_dir = re.escape(self.pages_alias.lstrip("/"))
        favicon = re.escape(self.favicon)
        return (
            rule(_ATTR + rf'href="\./{assets_dir}/', f'href="{assets}/'),
            rule(_ATTR + rf'src="\./{assets_dir}/', f'src="{assets}/'),
            rule(_ATTR + rf'href="\./{favicon}"', f'href="/{_literal(self.favicon)}"'),
            rule(_ATTR + r'href="\./fonts/', f'href="{assets}/fonts/'),
            rule(_ATTR + rf'href="\./{pages_dir}/', f'href="{pages}/'),
        )

    def _absolute_page_rules(self) -> tuple[RewriteRule, ...]:
        pages = _literal(self.pages_alias)
        pages_dir = re.escape(self.pages_alias.lstrip("/"))
        index = re.escape(self.index_document)
        return (
            rule(_ATTR + rf'href="\.\./{index}"', f'href="/{_literal(self.index_document)}"'),
            rule(_ATTR + rf'href="\.\./{pages_dir}/', f'href="{pages}/'),
        )

    def _relative_rules(self, depth: str, *, fold_parent_assets: bool) -> tuple[RewriteRule, ...]:
        assets_re = re.escape(self.assets_alias)
        pages_re = re.escape(self.pages_alias)
        assets_rel = _literal(depth + self.assets_alias.lstrip("/"))
        pages_rel = _literal(depth + self.pages_alias.lstrip("/"))
        favicon = re.escape(self.favicon)
        index = re.escape(self.index_document)
        rules = [
            rule(_ATTR + rf'href="{assets_re}/', f'href="{assets_rel}/'),
            rule(_ATTR + rf'src="{assets_re}/', f'src="{assets_rel}/'),
            rule(_ATTR + rf'href="/{favicon}"', f'href="{_literal(depth + self.favicon)}"'),
        ]
        if fold_parent_assets:
            # include files are written from the page folder's point of view
            assets_dir = re.escape(self.assets_alias.lstrip("/"))
            rules += [
                rule(_ATTR + rf'src="\.\./{assets_dir}/', f'src="{assets_rel}/'),
                rule(_ATTR + rf'href="\.\./{assets_dir}/', f'href="{assets_rel}/'),
            ]
        rules += [
            rule(_ATTR + rf'href="{pages_re}/', f'href="{pages_rel}/'),
            rule(_ATTR + rf'href="/{index}"', f'href="{_literal(depth + self.index_document)}"'),
        ]
        return tuple(rules)
