"""
Tests for the CLI — click commands through CliRunner.
"""

from __future__ import annotations

import json
import textwrap
from pathlib import Path

import pytest
from click.testing import CliRunner

from sitepipe import __version__
from sitepipe.core.services import build_orchestrator
from sitepipe.main import cli


def write(path: Path, content: str) -> Path:
    path.write_text(textwrap.dedent(content), encoding="utf-8")
    return path


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def site_yml(site_root: Path) -> Path:
    return write(site_root / "site.yml", """\
        site:
          language: en
          pathAliases:
            assetsPath: /assets
            pagesPath: /html
    """)


@pytest.fixture
def compiler(monkeypatch: pytest.MonkeyPatch, fake_compiler):
    monkeypatch.setattr(build_orchestrator, "SassCliCompiler", lambda: fake_compiler)
    monkeypatch.delenv("SITEPIPE_ENV", raising=False)
    return fake_compiler


class TestCLIBasics:
    def test_help(self, runner: CliRunner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        for command in ("build", "serve", "clean", "config", "page"):
            assert command in result.output

    def test_version(self, runner: CliRunner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestBuild:
    def test_build_json(self, runner, site_yml, site_root, compiler):
        result = runner.invoke(cli, ["-c", str(site_yml), "build", "--json"])
        assert result.exit_code == 0, result.output

        data = json.loads(result.stdout)
        assert data["ok"] is True
        assert [s["name"] for s in data["stages"]] == [
            "clean", "styles", "assets", "markup", "flip",
        ]
        assert compiler.calls[0]["output_style"] == "compressed"
        index = (site_root / "dist" / "index.html").read_text()
        assert 'lang="en"' in index

    def test_build_development_mode(self, runner, site_yml, site_root, compiler):
        result = runner.invoke(cli, ["-c", str(site_yml), "build", "--mode", "development"])
        assert result.exit_code == 0, result.output
        assert "Built development site" in result.output
        assert 'href="/html/about.html"' in (site_root / "dist" / "index.html").read_text()

    def test_environment_variable(self, runner, site_yml, compiler, monkeypatch):
        monkeypatch.setenv("SITEPIPE_ENV", "development")
        result = runner.invoke(cli, ["-c", str(site_yml), "build"])
        assert result.exit_code == 0, result.output
        assert compiler.calls[0]["output_style"] == "expanded"
        assert compiler.calls[0]["source_map"] is True

    def test_invalid_environment(self, runner, site_yml, compiler, monkeypatch):
        monkeypatch.setenv("SITEPIPE_ENV", "staging")
        result = runner.invoke(cli, ["-c", str(site_yml), "build"])
        assert result.exit_code == 1
        assert "SITEPIPE_ENV" in result.output

    def test_build_failure(self, runner, site_yml, compiler):
        compiler.fail = True
        result = runner.invoke(cli, ["-c", str(site_yml), "build"])
        assert result.exit_code == 1
        assert "Build failed" in result.output
        assert "Undefined variable" in result.output

    def test_build_failure_json(self, runner, site_yml, compiler):
        compiler.fail = True
        result = runner.invoke(cli, ["-c", str(site_yml), "build", "--json"])
        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert data["ok"] is False
        assert "error" in data

    def test_missing_config_file(self, runner, tmp_path: Path):
        result = runner.invoke(cli, ["-c", str(tmp_path / "nope.yml"), "build"])
        assert result.exit_code == 1
        assert "Config file not found" in result.output


class TestClean:
    def test_clean(self, runner, site_yml, site_root):
        (site_root / "dist" / "html").mkdir(parents=True)
        result = runner.invoke(cli, ["-c", str(site_yml), "clean"])
        assert result.exit_code == 0
        assert "Removed" in result.output
        assert not (site_root / "dist").exists()

    def test_nothing_to_clean(self, runner, site_yml):
        result = runner.invoke(cli, ["-c", str(site_yml), "clean"])
        assert result.exit_code == 0
        assert "Nothing to clean" in result.output

    def test_refuses_project_root(self, runner, site_root):
        config = write(site_root / "site.yml", "paths:\n  dist: .\n")
        result = runner.invoke(cli, ["-c", str(config), "clean"])
        assert result.exit_code == 1
        assert (site_root / "src").is_dir()


class TestConfigCheck:
    def test_valid(self, runner, site_yml):
        result = runner.invoke(cli, ["-c", str(site_yml), "config", "check"])
        assert result.exit_code == 0
        assert "Configuration is valid" in result.output

    def test_invalid(self, runner, site_root):
        (site_root / "src" / "index.html").unlink()
        config = write(site_root / "site.yml", "language: en\n")
        result = runner.invoke(cli, ["-c", str(config), "config", "check"])
        assert result.exit_code == 1
        assert "Root document not found" in result.output

    def test_json(self, runner, site_root):
        config = write(site_root / "site.yml", "viewport:\n  mode: sideways\n")
        result = runner.invoke(cli, ["-c", str(config), "config", "check", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["valid"] is True
        assert any("sideways" in w for w in data["warnings"])


class TestPageNew:
    def test_creates_page(self, runner, site_yml, site_root):
        result = runner.invoke(cli, ["-c", str(site_yml), "page", "new", "pricing"])
        assert result.exit_code == 0, result.output
        created = site_root / "src" / "pages" / "pricing.html"
        assert created.is_file()
        assert "<h1>Pricing</h1>" in created.read_text()

    def test_existing_page(self, runner, site_yml):
        result = runner.invoke(cli, ["-c", str(site_yml), "page", "new", "about"])
        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_force_overwrites(self, runner, site_yml, site_root):
        result = runner.invoke(
            cli, ["-c", str(site_yml), "page", "new", "about", "--title", "Who we are", "--force"],
        )
        assert result.exit_code == 0
        assert "Who we are" in (site_root / "src" / "pages" / "about.html").read_text()

    def test_invalid_name(self, runner, site_yml):
        result = runner.invoke(cli, ["-c", str(site_yml), "page", "new", "Bad Name"])
        assert result.exit_code == 1
        assert "Invalid page name" in result.output
