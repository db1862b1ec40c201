import io
import unittest
from contextlib import redirect_stderr, redirect_stdout
from unittest.mock import patch

import requests

from adocli.ado_client.errors import ADORequestError, ConfigError
from adocli.ado_client.models import ADOConfig
from adocli.cli.main import main

CFG = ADOConfig(pat="pat", collection_url="https://dev.azure.com/example", project="P", repo="R")


def _invoke(argv):
    out, err = io.StringIO(), io.StringIO()
    with redirect_stdout(out), redirect_stderr(err):
        code = main(argv)
    return code, out.getvalue(), err.getvalue()


class TestMain(unittest.TestCase):
    def test_help_does_not_need_config(self) -> None:
        with patch("adocli.cli.main.resolve_config") as mock_resolve:
            code, out, _ = _invoke(["help"])
        self.assertEqual(code, 0)
        self.assertIn("workitems-recent", out)
        mock_resolve.assert_not_called()

    def test_unknown_command_exits_1(self) -> None:
        code, _, err = _invoke(["frobnicate"])
        self.assertEqual(code, 1)
        self.assertIn("Unknown command: frobnicate", err)

    def test_config_error_prints_hint(self) -> None:
        with patch("adocli.cli.main.resolve_config", side_effect=ConfigError("Missing DEVOPS_PAT environment variable.", hint="Run ado init")):
            code, _, err = _invoke(["repos"])
        self.assertEqual(code, 1)
        self.assertIn("Missing DEVOPS_PAT", err)
        self.assertIn("Run ado init", err)

    def test_usage_error_prints_usage(self) -> None:
        with patch("adocli.cli.main.resolve_config", return_value=CFG):
            code, _, err = _invoke(["workitems-recent", "--foo=bar"])
        self.assertEqual(code, 1)
        self.assertIn("Unknown option for workitems-recent: --foo", err)
        self.assertIn("Usage: workitems-recent", err)

    def test_request_error_is_single_line(self) -> None:
        with patch("adocli.cli.main.resolve_config", return_value=CFG), patch(
            "adocli.cli.commands.ado_request", side_effect=ADORequestError(401, "Unauthorized")
        ):
            code, _, err = _invoke(["repos"])
        self.assertEqual(code, 1)
        self.assertEqual(err.strip(), "Azure DevOps API request failed (401). Unauthorized")

    def test_transport_error_exits_1(self) -> None:
        with patch("adocli.cli.main.resolve_config", return_value=CFG), patch(
            "adocli.cli.commands.ado_request", side_effect=requests.ConnectionError("refused")
        ):
            code, _, err = _invoke(["builds"])
        self.assertEqual(code, 1)
        self.assertIn("refused", err)

    def test_default_command_is_smoke(self) -> None:
        with patch("adocli.cli.main.resolve_config", return_value=CFG), patch(
            "adocli.cli.commands.ado_request", return_value=None
        ):
            code, out, _ = _invoke([])
        self.assertEqual(code, 0)
        self.assertIn("Azure DevOps connectivity check", out)

    def test_init_runs_without_config(self) -> None:
        with patch("adocli.cli.main.resolve_config") as mock_resolve, patch(
            "adocli.cli.commands.run_init_wizard"
        ) as mock_wizard:
            code, _, _ = _invoke(["init", "--local"])
        self.assertEqual(code, 0)
        mock_resolve.assert_not_called()
        mock_wizard.assert_called_once_with(local=True)

    def test_init_with_closed_stdin_exits_1(self) -> None:
        with patch("builtins.input", side_effect=EOFError), patch(
            "adocli.config.init_wizard.load_config_file", return_value={}
        ):
            code, _, err = _invoke(["init"])
        self.assertEqual(code, 1)
        self.assertIn("Aborted.", err)


if __name__ == "__main__":
    unittest.main()
