from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from adocli.ado_client.errors import UsageError
from adocli.util.options import ensure_allowed_options, option_string, parse_option_args, parse_positive_int

CHERRY_PICK_USAGE = "Usage: pr-cherry-pick <id> --target=<branch> [--topic=<branch>] [--repo=<repo>]"


@dataclass(frozen=True)
class CherryPickArgs:
    pr_id: int
    target: str
    topic: Optional[str] = None
    repo: Optional[str] = None


def parse_cherry_pick_args(args: Sequence[str]) -> CherryPickArgs:
    parsed = parse_option_args(args)
    ensure_allowed_options(parsed.options, {"target", "topic", "repo"}, "pr-cherry-pick", CHERRY_PICK_USAGE)

    pr_id = parse_positive_int(parsed.positionals[0]) if parsed.positionals else None
    if pr_id is None:
        raise UsageError("A valid pull request ID is required as the first argument.", usage=CHERRY_PICK_USAGE)
    if len(parsed.positionals) > 1:
        raise UsageError("Too many arguments for pr-cherry-pick.", usage=CHERRY_PICK_USAGE)

    target = option_string(parsed.options, "target")
    if target is None:
        raise UsageError("--target is required.", usage=CHERRY_PICK_USAGE)

    return CherryPickArgs(
        pr_id=pr_id,
        target=target,
        topic=option_string(parsed.options, "topic"),
        repo=option_string(parsed.options, "repo"),
    )


def to_ref_name(branch: str) -> str:
    return branch if branch.startswith("refs/") else f"refs/heads/{branch}"


def build_generated_ref_name(pr_id: int, target: str, topic: Optional[str] = None) -> str:
    if topic:
        return topic if topic.startswith("refs/heads/") else f"refs/heads/{topic}"
    safe_branch = target[len("refs/heads/"):] if target.startswith("refs/heads/") else target
    return f"refs/heads/cherry-pick-pr-{pr_id}-onto-{safe_branch}"
