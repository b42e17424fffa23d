"""
Build configuration model — the site.yml schema.

Loaded once per process by ``sitepipe.core.config.loader`` and passed to
every stage at construction. The model is frozen: no stage mutates it.

Path fields hold the strings exactly as written in site.yml. Stages never
read them directly; they go through :meth:`BuildConfig.resolve` or one of
the derived directory properties, which anchor everything on ``root``.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class _Model(BaseModel):
    """Shared settings: frozen, camelCase keys accepted as written."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class DirPair(_Model):
    """A source directory and its destination in the output tree."""

    src: str
    dest: str


class PathsConfig(_Model):
    src: str = "./src"
    dist: str = "./dist"
    html: DirPair = Field(default_factory=lambda: DirPair(src="./src/pages", dest="./dist/html"))
    scss: DirPair = Field(default_factory=lambda: DirPair(src="./src/styles", dest="./dist/assets/css"))
    js: DirPair = Field(default_factory=lambda: DirPair(src="./src/scripts", dest="./dist/assets/js"))
    public: DirPair = Field(default_factory=lambda: DirPair(src="./public", dest="./dist/assets"))


class PathAliases(_Model):
    """Short URL prefixes standing in for output subdirectories."""

    assets_path: str = Field(default="/assets", alias="assetsPath")
    pages_path: str = Field(default="/html", alias="pagesPath")


class StyleFiles(_Model):
    entry: str = "styles.scss"
    output: str = "styles.css"


class HtmlFiles(_Model):
    index: str = "index.html"


class FilesConfig(_Model):
    scss: StyleFiles = Field(default_factory=StyleFiles)
    html: HtmlFiles = Field(default_factory=HtmlFiles)
    favicon: str = "favicon.svg"


class HtmlBuildConfig(_Model):
    prefix: str = "@@"
    basepath: str = "@file"


class CssBuildConfig(_Model):
    load_paths: list[str] | None = Field(default=None, alias="loadPaths")
    include_paths: list[str] | None = Field(default=None, alias="includePaths")


class IconFontConfig(_Model):
    """Third-party icon font package mirrored into the fonts output."""

    src: str = "./node_modules/material-icons/iconfont"
    pattern: str = "*.woff*"
    dest: str = "material-icons"


class BuildSection(_Model):
    html: HtmlBuildConfig = Field(default_factory=HtmlBuildConfig)
    css: CssBuildConfig = Field(default_factory=CssBuildConfig)
    icon_font: IconFontConfig = Field(default_factory=IconFontConfig, alias="iconFont")


class ViewportConfig(_Model):
    mode: str = "responsive"
    fixed_width: int = Field(default=1600, alias="fixedWidth")


class DevConfig(_Model):
    host: str = "127.0.0.1"
    port: int = 3000
    open: bool = True
    notify: bool = False
    log_level: str = Field(default="info", alias="logLevel")


class BuildConfig(_Model):
    """Root configuration — everything a build needs, anchored on ``root``."""

    root: Path = Field(default_factory=Path.cwd)

    paths: PathsConfig = Field(default_factory=PathsConfig)
    path_aliases: PathAliases = Field(default_factory=PathAliases, alias="pathAliases")
    files: FilesConfig = Field(default_factory=FilesConfig)
    build: BuildSection = Field(default_factory=BuildSection)
    language: str = "ko"
    viewport: ViewportConfig = Field(default_factory=ViewportConfig)
    dev: DevConfig = Field(default_factory=DevConfig)

    def resolve(self, path: str | Path) -> Path:
        """Resolve a configured path against the project root."""
        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = self.root / candidate
        return candidate.resolve()

    # ── Derived directories ─────────────────────────────────────

    @property
    def src_dir(self) -> Path:
        return self.resolve(self.paths.src)

    @property
    def dist_dir(self) -> Path:
        return self.resolve(self.paths.dist)

    @property
    def html_src(self) -> Path:
        return self.resolve(self.paths.html.src)

    @property
    def html_dest(self) -> Path:
        return self.resolve(self.paths.html.dest)

    @property
    def styles_src(self) -> Path:
        return self.resolve(self.paths.scss.src)

    @property
    def styles_dest(self) -> Path:
        return self.resolve(self.paths.scss.dest)

    @property
    def scripts_src(self) -> Path:
        return self.resolve(self.paths.js.src)

    @property
    def scripts_dest(self) -> Path:
        return self.resolve(self.paths.js.dest)

    @property
    def public_src(self) -> Path:
        return self.resolve(self.paths.public.src)

    @property
    def public_dest(self) -> Path:
        return self.resolve(self.paths.public.dest)

    @property
    def source_roots(self) -> list[Path]:
        """Every configured source directory."""
        return [self.src_dir, self.html_src, self.styles_src, self.scripts_src, self.public_src]

    def sources_inside(self, path: Path) -> list[Path]:
        """Source directories that ``path`` equals or contains."""
        return [s for s in self.source_roots if s == path or path in s.parents]

    @property
    def index_source(self) -> Path:
        return self.src_dir / self.files.html.index

    @property
    def style_output(self) -> Path:
        """The main compiled style-sheet (target of CSS-only reloads)."""
        return self.styles_dest / self.files.scss.output

    @property
    def style_load_paths(self) -> list[Path]:
        """Compiler search paths: loadPaths, else includePaths, plus the style root."""
        css = self.build.css
        configured = css.load_paths if css.load_paths is not None else css.include_paths
        if configured is None:
            return [self.styles_src, self.resolve("./node_modules")]
        resolved = [self.resolve(p) for p in configured]
        if self.styles_src not in resolved:
            resolved.append(self.styles_src)
        return resolved

    @property
    def assets_alias(self) -> str:
        return _normalize_alias(self.path_aliases.assets_path)

    @property
    def pages_alias(self) -> str:
        return _normalize_alias(self.path_aliases.pages_path)

    def include_context(self, environment: str) -> dict:
        """Context object handed to the include preprocessor."""
        return {
            "env": environment,
            "language": self.language,
            "viewport": {
                "mode": self.viewport.mode,
                "fixedWidth": self.viewport.fixed_width,
            },
            "assetsPath": self.assets_alias,
            "pagesPath": self.pages_alias,
        }


def _normalize_alias(alias: str) -> str:
    """``assets/`` → ``/assets``: one leading slash, no trailing slash."""
    stripped = alias.strip().strip("/")
    return "/" + stripped if stripped else ""
