"""
Integration tests for buildmanifest CLI.
"""

import json

import pytest
from click.testing import CliRunner

from buildmanifest import __version__
from buildmanifest.cli import cli


@pytest.fixture
def runner():
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture
def packages_file(temp_dir, make_spec):
    """Resolved package specs for the build root and the OS tree."""
    path = temp_dir / "resolved.json"
    path.write_text(
        json.dumps(
            {
                "build": [[make_spec("dnf").to_dict(), make_spec("tar").to_dict()]],
                "os": [[make_spec("bash").to_dict()]],
            }
        )
    )
    return path


class TestCLIBasic:
    """Basic CLI tests."""

    def test_cli_help(self, runner):
        """Test that CLI help works."""
        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        assert "buildmanifest" in result.output
        for command in ("validate", "deps", "render", "config"):
            assert command in result.output

    def test_version_command(self, runner):
        """Test the version command."""
        result = runner.invoke(cli, ["version"])

        assert result.exit_code == 0
        assert f"buildmanifest v{__version__}" in result.output


class TestValidateCommand:
    """Tests for the validate command."""

    def test_valid(self, runner, definition_file):
        """Test a valid definition."""
        result = runner.invoke(cli, ["validate", str(definition_file)])

        assert result.exit_code == 0
        assert "Definition 'fedora-container' is valid" in result.output
        assert "Pipelines: 3" in result.output

    def test_invalid(self, runner, temp_dir):
        """Test an invalid definition fails with its errors."""
        path = temp_dir / "broken.toml"
        path.write_text('[manifest]\nname = "broken"\n\n[[pipelines]]\nname = "archive"\nkind = "archive"\n')

        result = runner.invoke(cli, ["validate", str(path)])

        assert result.exit_code == 1
        assert "[ERROR]" in result.output
        assert "requires a tree input" in result.output

    def test_strict(self, runner, temp_dir):
        """Test warnings fail validation in strict mode."""
        path = temp_dir / "warn.toml"
        path.write_text(
            '[manifest]\nname = "warn"\n\n[[pipelines]]\nname = "build"\nkind = "build"\n'
            'options = { colour = "blue" }\n'
        )

        lenient = runner.invoke(cli, ["validate", str(path)])
        strict = runner.invoke(cli, ["validate", "--strict", str(path)])

        assert lenient.exit_code == 0
        assert "[WARNING]" in lenient.output
        assert strict.exit_code == 1

    def test_invalid_toml(self, runner, temp_dir):
        """Test unparsable files are reported."""
        path = temp_dir / "broken.toml"
        path.write_text("[manifest\n")

        result = runner.invoke(cli, ["validate", str(path)])

        assert result.exit_code == 1
        assert "Error loading definition" in result.output

    def test_missing_file(self, runner, temp_dir):
        """Test a missing file is a usage error."""
        result = runner.invoke(cli, ["validate", str(temp_dir / "missing.toml")])

        assert result.exit_code == 2


class TestDepsCommand:
    """Tests for the deps command."""

    def test_json(self, runner, definition_file):
        """Test declarations as JSON."""
        result = runner.invoke(cli, ["deps", "--json", str(definition_file)])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert list(data) == ["build", "os", "archive"]
        assert data["build"]["package_set_chain"][0]["include"] == ["dnf", "rpm", "tar", "xz"]
        assert data["archive"]["build_packages"] == ["tar", "xz"]
        assert data["os"]["inline"] == ["hello"]

    def test_table(self, runner, definition_file):
        """Test declarations as a table."""
        result = runner.invoke(cli, ["deps", str(definition_file)])

        assert result.exit_code == 0
        assert "Dependencies of fedora-container" in result.output
        assert "archive" in result.output

    def test_variable_override(self, runner, definition_file):
        """Test --var overrides template variables."""
        result = runner.invoke(cli, ["deps", "--json", "--var", "release=40", str(definition_file)])

        assert result.exit_code == 0
        data = json.loads(result.output)
        repo = data["build"]["package_set_chain"][0]["repositories"][0]
        assert repo["baseurl"] == "https://dl.example.com/fedora/40/"

    def test_bad_variable(self, runner, definition_file):
        """Test malformed --var values are usage errors."""
        result = runner.invoke(cli, ["deps", "--var", "release", str(definition_file)])

        assert result.exit_code == 2


class TestRenderCommand:
    """Tests for the render command."""

    def test_render_stdout(self, runner, definition_file, packages_file):
        """Test rendering a manifest to stdout."""
        result = runner.invoke(cli, ["render", str(definition_file), "--packages", str(packages_file)])

        assert result.exit_code == 0
        document = json.loads(result.output)
        assert document["version"] == "2"
        assert [p["name"] for p in document["pipelines"]] == ["build", "os", "archive"]
        assert document["pipelines"][1]["build"] == "name:build"
        assert "sha256:bash" in document["sources"]["org.osbuild.curl"]["items"]

    def test_render_to_file(self, runner, definition_file, packages_file, temp_dir):
        """Test rendering a manifest to a file."""
        output = temp_dir / "manifest.json"

        result = runner.invoke(
            cli,
            ["render", str(definition_file), "-p", str(packages_file), "-o", str(output)],
        )

        assert result.exit_code == 0
        assert "Checkpoints: os" in result.output
        assert "Exports: archive" in result.output
        assert json.loads(output.read_text())["version"] == "2"

    def test_missing_packages(self, runner, definition_file):
        """Test pipelines with package sets need resolved specs."""
        result = runner.invoke(cli, ["render", str(definition_file)])

        assert result.exit_code == 1
        assert "No resolved package sets for pipelines: build, os" in result.output

    def test_misaligned_packages(self, runner, definition_file, temp_dir, make_spec):
        """Test resolved sets must match the declared chains."""
        path = temp_dir / "resolved.json"
        path.write_text(
            json.dumps(
                {
                    "build": [[make_spec("dnf").to_dict()]],
                    "os": [[make_spec("bash").to_dict()], [make_spec("vim").to_dict()]],
                }
            )
        )

        result = runner.invoke(cli, ["render", str(definition_file), "-p", str(path)])

        assert result.exit_code == 1
        assert "do not match the declared chains of: os" in result.output

    def test_config_indent(self, runner, definition_file, packages_file, temp_dir):
        """Test the output indent comes from the configuration."""
        config_path = temp_dir / "config.toml"
        config_path.write_text("[output]\nindent = 4\nsort_keys = true\n")

        result = runner.invoke(
            cli,
            ["--config", str(config_path), "render", str(definition_file), "-p", str(packages_file)],
        )

        assert result.exit_code == 0
        assert '\n    "pipelines"' in result.output
        assert result.output.index('"pipelines"') < result.output.index('"version"')


class TestConfigCommands:
    """Tests for the config command group."""

    def test_show_defaults(self, runner, mocker):
        """Test showing the built-in defaults."""
        mocker.patch("buildmanifest.core.config.CONFIG_LOCATIONS", [])

        result = runner.invoke(cli, ["config", "show"])

        assert result.exit_code == 0
        assert "# Loaded from: built-in defaults" in result.output
        assert "[output]" in result.output
        assert "runner = 'org.osbuild.linux'" in result.output

    def test_show_file(self, runner, temp_dir):
        """Test showing a loaded configuration file."""
        config_path = temp_dir / "config.toml"
        config_path.write_text('[platform]\narch = "aarch64"\n')

        result = runner.invoke(cli, ["--config", str(config_path), "config", "show"])

        assert result.exit_code == 0
        assert f"# Loaded from: {config_path}" in result.output
        assert "arch = 'aarch64'" in result.output

    def test_init(self, runner):
        """Test creating a default configuration file."""
        with runner.isolated_filesystem():
            result = runner.invoke(cli, ["config", "init"])

            assert result.exit_code == 0
            assert "Created configuration file: buildmanifest.toml" in result.output

            again = runner.invoke(cli, ["config", "init"])
            assert again.exit_code == 1
            assert "Use --force to overwrite" in again.output

            forced = runner.invoke(cli, ["config", "init", "--force"])
            assert forced.exit_code == 0
