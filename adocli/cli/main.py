from __future__ import annotations

import logging
import os
import sys
from typing import List, Mapping, Optional

import requests

from adocli.ado_client.errors import ADOError, ConfigError, UsageError
from adocli.cli.commands import COMMANDS, cmd_init
from adocli.config.settings import resolve_config

HELP_TEXT = """Azure DevOps CLI

Commands:
  smoke
  config
  init [--local]
  repos
  branches [repo]
  workitem-get <id> [--raw] [--expand=all|fields|links|relations]
  workitems-recent [top] [--tag=<tag>] [--type=<work-item-type>] [--state=<state>]
  workitem-comments <id> [top] [--top=<n>] [--order=asc|desc]
  workitem-comment-add <id> --text="..." [--file=path]
  workitem-comment-update <id> <commentId> --text="..." [--file=path]
  prs [status] [top] [repo]
  pr-get <id> [repo]
  pr-create --title=... --source=... --target=... [--description=...] [--repo=...] [--work-items=123,456]
  pr-update <id> [--title=...] [--description=...] [--repo=...] [--work-items=123,456]
  pr-approve <id> [repo]
  pr-autocomplete <id> [repo]
  pr-cherry-pick <id> --target=<branch> [--topic=<branch>] [--repo=<repo>]
  builds [top]

Environment:
  DEVOPS_PAT, ADO_COLLECTION_URL, ADO_PROJECT, ADO_REPO, ADO_INSECURE=1, ADO_DEBUG=1"""


def _configure_logging(environ: Optional[Mapping[str, str]] = None) -> None:
    env = os.environ if environ is None else environ
    level = logging.DEBUG if env.get("ADO_DEBUG") == "1" else logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s", stream=sys.stderr)


def _run_command(command: str, args: List[str]) -> int:
    if command == "init":
        return cmd_init(args)

    handler = COMMANDS.get(command)
    if handler is None:
        raise UsageError(f"Unknown command: {command}", usage=HELP_TEXT)

    cfg = resolve_config()
    return handler(cfg, args)


def main(argv: Optional[List[str]] = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    _configure_logging()

    command = args[0] if args else "smoke"
    if command in ("help", "--help", "-h"):
        print(HELP_TEXT)
        return 0

    try:
        return _run_command(command, args[1:])
    except UsageError as exc:
        print(exc, file=sys.stderr)
        if exc.usage:
            print(exc.usage, file=sys.stderr)
        return 1
    except ConfigError as exc:
        print(exc, file=sys.stderr)
        if exc.hint:
            print(exc.hint, file=sys.stderr)
        return 1
    except ADOError as exc:
        print(exc, file=sys.stderr)
        return 1
    except requests.RequestException as exc:
        print(f"Request to Azure DevOps failed: {exc}", file=sys.stderr)
        return 1
    except (KeyboardInterrupt, EOFError):
        print("Aborted.", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
