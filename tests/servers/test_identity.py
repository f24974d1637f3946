"""
Tests for server identity value types.
"""

from pathlib import Path

import pytest

from lspkit.servers.identity import (
    ArtifactSpec,
    Provenance,
    ResolvedBinary,
    ToolIdentity,
)


class TestArtifactSpec:
    def test_requires_filename_and_digest(self):
        with pytest.raises(ValueError, match="filename"):
            ArtifactSpec("", "aa")
        with pytest.raises(ValueError, match="SHA256"):
            ArtifactSpec("Tool.zip", "")


class TestToolIdentity:
    """Test ToolIdentity construction and queries."""

    def test_download_url(self, make_identity):
        identity = make_identity()
        artifact = identity.artifacts["linux-x64"]

        assert (
            identity.download_url(artifact)
            == "https://example.com/tool/releases/download/v3.0.20/Tool.zip"
        )

    def test_download_url_strips_trailing_slash(self, make_identity):
        identity = make_identity(repo_url="https://example.com/tool/")
        artifact = identity.artifacts["linux-x64"]

        assert identity.download_url(artifact).startswith(
            "https://example.com/tool/releases/"
        )

    def test_custom_url_template(self, make_identity):
        identity = make_identity(url_template="https://mirror.test/{name}/{version}/{filename}")
        artifact = identity.artifacts["linux-x64"]

        assert identity.download_url(artifact) == "https://mirror.test/Tool/3.0.20/Tool.zip"

    def test_rejects_v_prefix(self, make_identity):
        with pytest.raises(ValueError, match="'v' prefix"):
            make_identity(version="v3.0.20")

    def test_rejects_empty_name(self, make_identity):
        with pytest.raises(ValueError):
            make_identity(name="")

    def test_supports_system_matches_artifact_table(self, make_identity):
        identity = make_identity()

        assert identity.supports_system("linux", "x64")
        assert not identity.supports_system("linux", "arm64")
        assert not identity.supports_system("windows", "x64")
        assert identity.requires_manual_setup("macos", "arm64")
        assert identity.supported_platforms() == ["linux-x64"]

    def test_executable_name(self, make_identity):
        identity = make_identity()

        assert identity.executable_name("linux") == "Tool"
        assert identity.executable_name("macos") == "Tool"
        assert identity.executable_name("windows") == "Tool.exe"

    def test_artifact_table_is_read_only(self, make_identity):
        identity = make_identity()

        with pytest.raises(TypeError):
            identity.artifacts["macos-x64"] = ArtifactSpec("Tool-mac.zip", "bb")

    def test_caller_dict_does_not_leak(self):
        table = {"linux-x64": ArtifactSpec("Tool.zip", "aa")}
        identity = ToolIdentity("Tool", "1.0", artifacts=table)
        table["windows-x64"] = ArtifactSpec("Tool.exe.zip", "bb")

        assert identity.supported_platforms() == ["linux-x64"]

    def test_hashable(self, make_identity):
        assert hash(make_identity()) == hash(make_identity())

    def test_display_name(self, make_identity):
        assert make_identity().display_name == "Language Server (Tool)"
        assert make_identity(label="Tool LS").display_name == "Tool LS"

    def test_default_launch_args(self, make_identity):
        assert make_identity().launch_args == ("--lsp",)


class TestResolvedBinary:
    def test_str(self):
        binary = ResolvedBinary(Path("/opt/Tool"), Provenance.FOUND_IN_CACHE)
        assert str(binary) == f"{Path('/opt/Tool')} (found-in-cache)"
