"""Tests for the lingua console client."""

import io
import unittest
from unittest.mock import MagicMock, patch

import requests

from cli.console import ConsoleUI


class TestConsoleUI(unittest.TestCase):
    """Tests for the console front end with a mocked API client."""

    def setUp(self):
        self.client = MagicMock()
        self.client.base_url = 'http://localhost:8000'
        self.ui = ConsoleUI(self.client)

    def test_run_without_server_prints_hint(self):
        self.client.health_check.side_effect = requests.ConnectionError('refused')

        with patch('sys.stdout', new_callable=io.StringIO) as stdout:
            self.ui.run()

        output = stdout.getvalue()
        self.assertIn('Cannot connect to server at http://localhost:8000', output)
        self.assertIn('Make sure the server is running: python run_server.py', output)
        self.client.begin_session.assert_not_called()


if __name__ == '__main__':
    unittest.main()
