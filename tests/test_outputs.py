"""Tests for publishing handoff artifacts as step outputs."""

from __future__ import annotations

import io
import re
from pathlib import Path

from click.testing import CliRunner

from azure_oidc.outputs import add_mask, publish, publish_outputs


def read_outputs(path: Path) -> dict[str, str]:
    lines = path.read_text().splitlines()
    return dict(line.split("=", 1) for line in lines)


class TestPublishOutputs:
    """Tests for publish_outputs."""

    def test_expiry_and_token_published(self, tmp_path: Path) -> None:
        output = tmp_path / "github_output"
        expiry = tmp_path / "token_expiry"
        token = tmp_path / "azure_token"
        expiry.write_text("2030-01-01T00:00:00Z")
        token.write_text("azure-token")
        stream = io.StringIO()

        published = publish_outputs(output, expiry, token, stream=stream)

        assert published == {"token-expiry": "2030-01-01T00:00:00Z", "azure-token": "azure-token"}
        assert read_outputs(output) == published
        assert stream.getvalue() == "::add-mask::azure-token\n"
        assert not expiry.exists()
        assert not token.exists()

    def test_token_absent(self, tmp_path: Path) -> None:
        output = tmp_path / "github_output"
        expiry = tmp_path / "token_expiry"
        expiry.write_text("2030-01-01T00:00:00Z")
        stream = io.StringIO()

        published = publish_outputs(output, expiry, tmp_path / "azure_token", stream=stream)

        assert published == {"token-expiry": "2030-01-01T00:00:00Z"}
        assert stream.getvalue() == ""
        assert not expiry.exists()

    def test_missing_expiry_falls_back_to_now(self, tmp_path: Path) -> None:
        output = tmp_path / "github_output"

        published = publish_outputs(output, tmp_path / "token_expiry", tmp_path / "azure_token")

        assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z", published["token-expiry"])

    def test_existing_outputs_preserved(self, tmp_path: Path) -> None:
        output = tmp_path / "github_output"
        output.write_text("other=value\n")

        publish_outputs(output, tmp_path / "token_expiry", tmp_path / "azure_token")

        assert read_outputs(output)["other"] == "value"
        assert "token-expiry" in read_outputs(output)

    def test_add_mask(self) -> None:
        stream = io.StringIO()

        add_mask("secret", stream)

        assert stream.getvalue() == "::add-mask::secret\n"


class TestPublishCommand:
    """Tests for the azure-oidc-publish command."""

    def test_publishes_to_github_output(self, tmp_path: Path) -> None:
        output = tmp_path / "github_output"
        expiry = tmp_path / "token_expiry"
        token = tmp_path / "azure_token"
        expiry.write_text("2030-01-01T00:00:00Z")
        token.write_text("azure-token")

        result = CliRunner().invoke(
            publish,
            ["--expiry-file", str(expiry), "--token-file", str(token)],
            env={"GITHUB_OUTPUT": str(output)},
        )

        assert result.exit_code == 0
        assert "::add-mask::azure-token" in result.output
        assert read_outputs(output)["azure-token"] == "azure-token"
        assert not token.exists()

    def test_missing_github_output_fails_and_cleans_up(self, tmp_path: Path) -> None:
        expiry = tmp_path / "token_expiry"
        token = tmp_path / "azure_token"
        expiry.write_text("2030-01-01T00:00:00Z")
        token.write_text("azure-token")

        result = CliRunner().invoke(
            publish,
            ["--expiry-file", str(expiry), "--token-file", str(token)],
            env={"GITHUB_OUTPUT": ""},
        )

        assert result.exit_code == 1
        assert "GITHUB_OUTPUT" in result.output
        assert not expiry.exists()
        assert not token.exists()
