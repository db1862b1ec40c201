import json
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from adocli.config.init_wizard import collect_config_values, render_config_summary, run_init_wizard


class TestInitWizard(unittest.TestCase):
    def test_render_summary_censors_pat(self) -> None:
        screen = render_config_summary(
            {"pat": "abcdefghijklmnop", "collectionUrl": "https://dev.azure.com/MyOrg", "project": "BlackLagoon"},
            Path("/tmp/config.json"),
        )
        self.assertIn("ADO CLI SETUP", screen)
        self.assertIn("abcd********mnop", screen)
        self.assertNotIn("abcdefghijklmnop", screen)
        self.assertIn("BlackLagoon", screen)
        self.assertIn("REPOSITORY     : <not set>", screen)

    def test_blank_answers_keep_existing_values(self) -> None:
        existing = {"pat": "existing-pat-value", "collectionUrl": "https://x/y", "project": "P", "repo": "R"}
        with patch("builtins.input", return_value=""):
            values = collect_config_values(existing)
        self.assertEqual(values["pat"], "existing-pat-value")
        self.assertEqual(values["project"], "P")
        self.assertFalse(values["insecure"])

    def test_placeholders_are_not_offered_as_defaults(self) -> None:
        with patch("builtins.input", return_value=""):
            values = collect_config_values({"project": "<your-project>"}, include_pat=False)
        self.assertIsNone(values["project"])
        self.assertNotIn("pat", values)

    def test_run_writes_global_config(self) -> None:
        answers = iter(["new-pat-123456", "https://dev.azure.com/MyOrg/", "Black Lagoon", "Main Repo", "y"])
        with tempfile.TemporaryDirectory() as tmpdir:
            environ = {"XDG_CONFIG_HOME": tmpdir}
            with patch("builtins.input", side_effect=lambda _prompt: next(answers)), patch("builtins.print"):
                target = run_init_wizard(environ=environ)

            self.assertEqual(target, Path(tmpdir) / "ado" / "config.json")
            saved = json.loads(target.read_text(encoding="utf-8"))
            self.assertEqual(
                saved,
                {
                    "pat": "new-pat-123456",
                    "collectionUrl": "https://dev.azure.com/MyOrg",
                    "project": "Black Lagoon",
                    "repo": "Main Repo",
                    "insecure": True,
                },
            )

    def test_run_local_skips_pat(self) -> None:
        answers = iter(["https://dev.azure.com/MyOrg", "Proj", "Repo", ""])
        with tempfile.TemporaryDirectory() as tmpdir:
            with patch("builtins.input", side_effect=lambda _prompt: next(answers)), patch("builtins.print"):
                target = run_init_wizard(local=True, cwd=Path(tmpdir))

            self.assertEqual(target, Path(tmpdir) / "ado.json")
            saved = json.loads(target.read_text(encoding="utf-8"))
            self.assertNotIn("pat", saved)
            self.assertEqual(saved["project"], "Proj")
            self.assertFalse(saved["insecure"])


if __name__ == "__main__":
    unittest.main()
