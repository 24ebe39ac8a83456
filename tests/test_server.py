"""
Test suite for the dotnetdc MCP server entry point.
"""

from unittest.mock import patch

from dotnetdc import server
from dotnetdc.utils.config import SERVER_NAME


class TestServer:
    """Test server wiring."""

    def test_app_name(self):
        assert server.app.name == SERVER_NAME

    def test_main_registers_tools_and_runs(self):
        with patch.object(server, "register_dotnet_tools") as mock_register, \
             patch.object(server.app, "run") as mock_run:
            server.main()

        mock_register.assert_called_once_with(server.app)
        mock_run.assert_called_once_with()
