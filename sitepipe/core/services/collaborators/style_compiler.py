"""
Style compiler — the Sass collaborator.

Drives the Dart Sass command-line executable (``sass``) as an asyncio
subprocess, one entry file per call. Compile failures are turned into
:class:`StyleCompileError` with whatever file/line/column Sass printed.

Install hint: ``npm install -g sass`` (or any ``sass`` on PATH).
"""

from __future__ import annotations

import asyncio
import logging
import re
import shutil
from pathlib import Path
from typing import Literal, Protocol, Sequence

logger = logging.getLogger(__name__)

OutputStyle = Literal["expanded", "compressed"]

# "  src/styles/styles.scss 3:5  root stylesheet"
_LOCATION_RE = re.compile(
    r"^\s*(?P<file>\S.*?\.(?:scss|sass|css))\s+(?P<line>\d+):(?P<column>\d+)\b",
    re.MULTILINE,
)


class StyleCompileError(Exception):
    """A compiler-reported error. Fatal: the build aborts."""

    def __init__(
        self,
        message: str,
        *,
        file: str | None = None,
        line: int | None = None,
        column: int | None = None,
    ) -> None:
        self.message = message
        self.file = file
        self.line = line
        self.column = column
        super().__init__(self.describe())

    def describe(self) -> str:
        if self.file:
            return f"{self.message} ({self.file}:{self.line}:{self.column})"
        return self.message


class StyleCompiler(Protocol):
    """Contract the style stage relies on."""

    async def compile(
        self,
        source: Path,
        dest: Path,
        *,
        output_style: OutputStyle,
        load_paths: Sequence[Path],
        source_map: bool,
        quiet_deps: bool = True,
    ) -> None: ...


class SassCliCompiler:
    """Default :class:`StyleCompiler` backed by the ``sass`` executable."""

    def __init__(self, executable: str = "sass") -> None:
        self.executable = executable

    def detect(self) -> bool:
        """Check if the Sass executable is available."""
        return shutil.which(self.executable) is not None

    def command(
        self,
        source: Path,
        dest: Path,
        *,
        output_style: OutputStyle,
        load_paths: Sequence[Path],
        source_map: bool,
        quiet_deps: bool = True,
    ) -> list[str]:
        """Build the argv for one compile."""
        cmd = [self.executable, f"--style={output_style}", "--no-error-css"]
        cmd += [f"--load-path={p}" for p in load_paths]
        if quiet_deps:
            cmd.append("--quiet-deps")
        if source_map:
            cmd += ["--source-map", "--source-map-urls=relative", "--no-embed-sources"]
        else:
            cmd.append("--no-source-map")
        cmd += [str(source), str(dest)]
        return cmd

    async def compile(
        self,
        source: Path,
        dest: Path,
        *,
        output_style: OutputStyle,
        load_paths: Sequence[Path],
        source_map: bool,
        quiet_deps: bool = True,
    ) -> None:
        executable = shutil.which(self.executable)
        if executable is None:
            raise StyleCompileError(
                f"Sass executable '{self.executable}' not found on PATH "
                "(install with: npm install -g sass)"
            )

        cmd = self.command(
            source, dest,
            output_style=output_style,
            load_paths=load_paths,
            source_map=source_map,
            quiet_deps=quiet_deps,
        )
        cmd[0] = executable
        dest.parent.mkdir(parents=True, exist_ok=True)
        logger.debug("Running: %s", " ".join(cmd))

        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        _stdout, stderr = await proc.communicate()
        err_text = stderr.decode("utf-8", errors="replace")

        if proc.returncode != 0:
            raise parse_compile_error(err_text, source)

        for line in err_text.splitlines():
            if line.strip():
                logger.debug("sass: %s", line)


def parse_compile_error(output: str, source: Path) -> StyleCompileError:
    """Turn Sass stderr into a StyleCompileError.

    The message is the first non-empty line without its ``Error:``
    prefix; the location is the first ``file line:column`` trace line.
    """
    lines = [ln.strip() for ln in output.splitlines() if ln.strip()]
    message = lines[0] if lines else f"Sass failed to compile {source}"
    if message.startswith("Error:"):
        message = message[len("Error:"):].strip()

    m = _LOCATION_RE.search(output)
    if m is None:
        return StyleCompileError(message, file=str(source))
    return StyleCompileError(
        message,
        file=m.group("file"),
        line=int(m.group("line")),
        column=int(m.group("column")),
    )
