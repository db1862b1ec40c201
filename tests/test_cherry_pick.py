import unittest

from adocli.ado_client.errors import UsageError
from adocli.util.cherry_pick import CherryPickArgs, build_generated_ref_name, parse_cherry_pick_args, to_ref_name


class TestParseCherryPickArgs(unittest.TestCase):
    def test_pr_id_and_target(self) -> None:
        self.assertEqual(parse_cherry_pick_args(["42", "--target=main"]), CherryPickArgs(pr_id=42, target="main"))

    def test_all_options(self) -> None:
        parsed = parse_cherry_pick_args(["100", "--target=release/v2", "--topic=my-branch", "--repo=other-repo"])
        self.assertEqual(
            parsed,
            CherryPickArgs(pr_id=100, target="release/v2", topic="my-branch", repo="other-repo"),
        )

    def test_missing_or_invalid_pr_id(self) -> None:
        with self.assertRaisesRegex(UsageError, "A valid pull request ID is required"):
            parse_cherry_pick_args(["--target=main"])
        with self.assertRaisesRegex(UsageError, "A valid pull request ID is required"):
            parse_cherry_pick_args(["foo", "--target=main"])

    def test_missing_target(self) -> None:
        with self.assertRaisesRegex(UsageError, "--target is required"):
            parse_cherry_pick_args(["42"])

    def test_unknown_option(self) -> None:
        with self.assertRaisesRegex(UsageError, "Unknown option for pr-cherry-pick: --bogus"):
            parse_cherry_pick_args(["42", "--target=main", "--bogus=x"])


class TestRefNames(unittest.TestCase):
    def test_default_generated_name(self) -> None:
        self.assertEqual(build_generated_ref_name(42, "main"), "refs/heads/cherry-pick-pr-42-onto-main")

    def test_strips_refs_heads_from_target(self) -> None:
        self.assertEqual(
            build_generated_ref_name(42, "refs/heads/release/v2"),
            "refs/heads/cherry-pick-pr-42-onto-release/v2",
        )

    def test_custom_topic(self) -> None:
        self.assertEqual(build_generated_ref_name(42, "main", "my-branch"), "refs/heads/my-branch")
        self.assertEqual(build_generated_ref_name(42, "main", "refs/heads/my-branch"), "refs/heads/my-branch")

    def test_to_ref_name(self) -> None:
        self.assertEqual(to_ref_name("feature/x"), "refs/heads/feature/x")
        self.assertEqual(to_ref_name("refs/tags/v1"), "refs/tags/v1")


if __name__ == "__main__":
    unittest.main()
