"""Unit tests for ServerConfigLoader."""

import pytest

from toolmesh_core.config import ServerConfigLoader, is_private_host, resolve_env_vars
from toolmesh_core.errors import ToolmeshError
from toolmesh_core.types import MCPAuthType, MCPTransport


def _messages(result):
    return [issue.message for issue in result.errors]


class TestResolveEnvVars:
    """Tests for ${VAR} resolution."""

    def test_set_variable(self, monkeypatch):
        monkeypatch.setenv("TOOLMESH_TEST_TOKEN", "abc")

        assert resolve_env_vars("Bearer ${TOOLMESH_TEST_TOKEN}") == "Bearer abc"

    def test_default_value(self, monkeypatch):
        monkeypatch.delenv("TOOLMESH_TEST_MISSING", raising=False)

        assert resolve_env_vars("${TOOLMESH_TEST_MISSING:-fallback}") == "fallback"

    def test_required_missing(self, monkeypatch):
        monkeypatch.delenv("TOOLMESH_TEST_MISSING", raising=False)

        with pytest.raises(ToolmeshError) as exc_info:
            resolve_env_vars("${TOOLMESH_TEST_MISSING}")

        assert exc_info.value.code == "CONFIG_INVALID"
        assert "TOOLMESH_TEST_MISSING" in exc_info.value.detail

    def test_custom_error_message(self, monkeypatch):
        monkeypatch.delenv("TOOLMESH_TEST_MISSING", raising=False)

        with pytest.raises(ToolmeshError) as exc_info:
            resolve_env_vars("${TOOLMESH_TEST_MISSING:?set the API key}")

        assert exc_info.value.detail == "set the API key"


class TestIsPrivateHost:
    """Tests for the private network check."""

    @pytest.mark.parametrize(
        "host",
        ["localhost", "127.0.0.1", "10.1.2.3", "172.16.0.1", "192.168.1.10", "::1", "169.254.1.1"],
    )
    def test_private(self, host):
        assert is_private_host(host)

    @pytest.mark.parametrize("host", ["mcp.example.com", "8.8.8.8", "172.32.0.1"])
    def test_public(self, host):
        assert not is_private_host(host)


class TestValidate:
    """Tests for configuration validation."""

    def test_valid_http_and_stdio(self):
        result = ServerConfigLoader().validate(
            [
                {"id": "a", "name": "A", "url": "https://a.example.com/mcp"},
                {"id": "b", "name": "B", "transport": "stdio", "command": "npx", "args": ["srv"]},
            ]
        )

        assert result.valid
        assert result.errors == []

    def test_missing_id(self):
        result = ServerConfigLoader().validate([{"name": "A", "url": "https://a.example.com"}])

        assert not result.valid
        assert _messages(result) == ["id is required"]

    def test_duplicate_id(self):
        result = ServerConfigLoader().validate(
            [
                {"id": "a", "name": "A", "url": "https://a.example.com"},
                {"id": "a", "name": "B", "url": "https://b.example.com"},
            ]
        )

        assert _messages(result) == ["Duplicate server id: a"]

    def test_missing_name_is_warning(self):
        result = ServerConfigLoader().validate([{"id": "a", "url": "https://a.example.com"}])

        assert result.valid
        assert result.warnings[0].path == "mcp_servers[0].name"

    def test_invalid_transport(self):
        result = ServerConfigLoader().validate([{"id": "a", "name": "A", "transport": "ws"}])

        assert _messages(result) == ["Invalid transport type: ws"]

    def test_http_requires_url(self):
        result = ServerConfigLoader().validate([{"id": "a", "name": "A"}])

        assert _messages(result) == ["URL is required for HTTP transport"]

    @pytest.mark.parametrize("url", ["not a url", "ftp://host/path", "https://"])
    def test_invalid_url(self, url):
        result = ServerConfigLoader().validate([{"id": "a", "name": "A", "url": url}])

        assert _messages(result) == ["Invalid URL format"]

    def test_require_https(self):
        loader = ServerConfigLoader(require_https=True)

        result = loader.validate([{"id": "a", "name": "A", "url": "http://a.example.com"}])

        assert _messages(result) == ["HTTPS is required in production"]

    def test_cloud_mode_blocks_private_hosts(self):
        loader = ServerConfigLoader(cloud_mode=True)

        result = loader.validate([{"id": "a", "name": "A", "url": "https://192.168.0.5/mcp"}])

        assert _messages(result) == ["Private network URLs are not allowed"]

    def test_cloud_mode_blocks_stdio(self):
        loader = ServerConfigLoader(cloud_mode=True)

        result = loader.validate([{"id": "a", "name": "A", "transport": "stdio", "command": "x"}])

        assert _messages(result) == ["stdio transport is not available in cloud mode"]

    def test_stdio_requires_command(self):
        result = ServerConfigLoader().validate([{"id": "a", "name": "A", "transport": "stdio"}])

        assert _messages(result) == ["Command is required for stdio transport"]

    def test_invalid_auth_type(self):
        result = ServerConfigLoader().validate(
            [{"id": "a", "name": "A", "url": "https://a.example.com", "authType": "oauth"}]
        )

        assert _messages(result) == ["Invalid auth type: oauth"]

    def test_invalid_auth_type_on_stdio(self):
        result = ServerConfigLoader().validate(
            [{"id": "a", "name": "A", "transport": "stdio", "command": "srv", "authType": "oauth"}]
        )

        assert _messages(result) == ["Invalid auth type: oauth"]

    def test_invalid_auth_type_reported_with_missing_url(self):
        result = ServerConfigLoader().validate([{"id": "a", "name": "A", "authType": "oauth"}])

        assert _messages(result) == [
            "Invalid auth type: oauth",
            "URL is required for HTTP transport",
        ]

    def test_invalid_enabled_value(self):
        result = ServerConfigLoader().validate(
            [{"id": "a", "name": "A", "url": "https://a.example.com", "enabled": "maybe"}]
        )

        assert _messages(result) == ["Invalid boolean value: 'maybe'"]

    def test_not_a_list(self):
        result = ServerConfigLoader().validate({"id": "a"})

        assert not result.valid


class TestLoad:
    """Tests for loading from lists and YAML files."""

    def test_load_from_list(self):
        configs = ServerConfigLoader().load_from_list(
            [
                {
                    "id": "gh",
                    "name": "GitHub",
                    "url": "https://gh.example.com/mcp",
                    "authType": "bearer",
                    "apiKey": "tok",
                },
                {"id": "fs", "name": "Files", "transport": "stdio", "command": "fs-server"},
            ]
        )

        assert configs[0].auth_type == MCPAuthType.BEARER
        assert configs[0].api_key == "tok"
        assert configs[1].transport == MCPTransport.STDIO
        assert configs[1].command == "fs-server"

    def test_load_from_list_collects_errors(self):
        with pytest.raises(ToolmeshError) as exc_info:
            ServerConfigLoader().load_from_list([{"name": "A"}, {"id": "b", "transport": "stdio"}])

        detail = exc_info.value.detail
        assert exc_info.value.code == "CONFIG_INVALID"
        assert "- mcp_servers[0].id: id is required" in detail
        assert "- mcp_servers[1].command: Command is required for stdio transport" in detail

    def test_load_stdio_with_bad_auth_type_is_config_error(self):
        with pytest.raises(ToolmeshError) as exc_info:
            ServerConfigLoader().load_from_list(
                [{"id": "s", "name": "S", "transport": "stdio", "command": "srv", "authType": "oauth"}]
            )

        assert exc_info.value.code == "CONFIG_INVALID"
        assert "- mcp_servers[0].authType: Invalid auth type: oauth" in exc_info.value.detail

    def test_load_string_enabled_flag(self):
        configs = ServerConfigLoader().load_from_list(
            [{"id": "a", "name": "A", "url": "https://a.example.com", "enabled": "false"}]
        )

        assert configs[0].enabled is False

    def test_load_yaml_with_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TOOLMESH_TEST_KEY", "from-env")
        monkeypatch.delenv("TOOLMESH_TEST_LEVEL", raising=False)
        path = tmp_path / "servers.yaml"
        path.write_text(
            "mcp_servers:\n"
            "  - id: remote\n"
            "    name: Remote\n"
            "    url: https://remote.example.com/mcp\n"
            "    auth_type: bearer\n"
            "    api_key: ${TOOLMESH_TEST_KEY}\n"
            "  - id: local\n"
            "    name: Local\n"
            "    transport: stdio\n"
            "    command: python\n"
            "    args: [-m, server]\n"
            "    env:\n"
            "      LEVEL: ${TOOLMESH_TEST_LEVEL:-debug}\n"
        )

        configs = ServerConfigLoader().load(path)

        assert configs[0].api_key == "from-env"
        assert configs[1].args == ("-m", "server")
        assert configs[1].env == {"LEVEL": "debug"}

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(ToolmeshError) as exc_info:
            ServerConfigLoader().load(tmp_path / "nope.yaml")

        assert "not found" in exc_info.value.detail

    def test_load_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("mcp_servers: [unclosed\n")

        with pytest.raises(ToolmeshError) as exc_info:
            ServerConfigLoader().load(path)

        assert "Invalid YAML" in exc_info.value.detail

    def test_load_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")

        assert ServerConfigLoader().load(path) == []
