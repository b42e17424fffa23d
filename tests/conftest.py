"""
Shared test fixtures — a sample site tree and fake collaborators.
"""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from sitepipe.core.models.config import BuildConfig
from sitepipe.core.services.collaborators.style_compiler import StyleCompileError
from sitepipe.core.services.file_waiter import FileWaiter


def write(path: Path, content: str = "") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(content), encoding="utf-8")
    return path


class FakeCompiler:
    """Style compiler stand-in: writes a tiny CSS file per entry."""

    def __init__(self) -> None:
        self.calls: list[dict] = []
        self.fail = False
        self.write_output = True

    async def compile(self, source, dest, *, output_style, load_paths, source_map, quiet_deps=True):
        self.calls.append({
            "source": source,
            "dest": dest,
            "output_style": output_style,
            "load_paths": list(load_paths),
            "source_map": source_map,
            "quiet_deps": quiet_deps,
        })
        if self.fail:
            raise StyleCompileError("Undefined variable.", file=str(source), line=3, column=10)
        if not self.write_output:
            return
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_text(
            f"/* {source.name} ({output_style}) */\n"
            ".logo{background:url(/assets/img/logo.png)}\n"
            '.icon{background:url("/assets/img/ui/btn.png")}\n'
            ".ext{background:url(https://cdn.example.com/x.png)}\n",
            encoding="utf-8",
        )
        if source_map:
            dest.with_name(dest.name + ".map").write_text("{}", encoding="utf-8")


@pytest.fixture
def site_root(tmp_path: Path) -> Path:
    """A complete sample site laid out with the default paths."""
    root = tmp_path / "site"

    write(root / "src" / "index.html", """\
        <!DOCTYPE html>
        <html lang="@@language">
        <head>
        @@include('./templates/_head.html', {page_title: "Home"})
        </head>
        <body>
        <a href="./html/about.html">About</a>
        <img src="images/logo.png" alt="">
        </body>
        </html>
    """)
    write(root / "src" / "pages" / "about.html", """\
        <html lang="@@language">
        <head>
        @@include('../templates/_head.html', {page_title: "About"})
        </head>
        <body>
        <a href="../index.html">Home</a>
        <a href="contact.html">Contact</a>
        <img src="../assets/img/logo.png" alt="">
        </body>
        </html>
    """)
    write(root / "src" / "pages" / "contact.html", """\
        <html><body><a href="about.html">About</a></body></html>
    """)
    write(root / "src" / "templates" / "_head.html", """\
        <title>@@page_title</title>
        <link rel="stylesheet" href="../assets/css/styles.css">
        <link rel="icon" href="favicon.svg">
        <script src="https://cdn.example.com/lib.js" crossorigin="anonymous"></script>
    """)
    write(root / "src" / "templates" / "_header.html", "<header>@@page_name</header>\n")
    write(root / "src" / "templates" / "_footer.html", "<footer></footer>\n")
    write(root / "src" / "templates" / "_script.html", '<script src="js/app.js"></script>\n')

    write(root / "src" / "styles" / "styles.scss", "@use 'vars';\nbody { color: red; }\n")
    write(root / "src" / "styles" / "_vars.scss", "$primary: red;\n")
    write(root / "src" / "styles" / "pages" / "home.scss", ".home { margin: 0; }\n")

    write(root / "src" / "scripts" / "app.js", "console.log('app');\n")
    write(root / "src" / "scripts" / "vendor" / "lib.js", "console.log('lib');\n")

    write(root / "public" / "favicon.svg", "<svg/>")
    write(root / "public" / "fonts" / "brand.woff2", "font")
    write(root / "public" / "img" / "logo.png", "png")
    write(root / "public" / "img" / "ui" / "btn.png", "png")
    write(root / "public" / "img" / "sprite.scss", "// not an image")

    return root


@pytest.fixture
def config(site_root: Path) -> BuildConfig:
    return BuildConfig(root=site_root)


@pytest.fixture
def fake_compiler() -> FakeCompiler:
    return FakeCompiler()


@pytest.fixture
def fast_waiter() -> FileWaiter:
    return FileWaiter(max_attempts=3, interval_ms=1)
