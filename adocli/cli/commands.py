from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from adocli.ado_client.errors import ADODomainError, UsageError
from adocli.ado_client.http import COMMENTS_API_VERSION, JSON_PATCH_CONTENT_TYPE, ado_request
from adocli.ado_client.models import ADOConfig
from adocli.config.init_wizard import run_init_wizard
from adocli.config.settings import censor_pat
from adocli.util.cherry_pick import build_generated_ref_name, parse_cherry_pick_args, to_ref_name
from adocli.util.options import (
    OptionValue,
    ParsedOptions,
    ensure_allowed_options,
    is_truthy_flag,
    option_string,
    parse_option_args,
    require_id,
    to_bounded_top,
)
from adocli.util.pr_workitems import artifact_link_patch, build_pull_request_artifact_url, parse_work_item_ids
from adocli.util.url import encode_path_segment, encode_query_value
from adocli.util.wiql import WORKITEMS_RECENT_USAGE, build_recent_work_items_wiql, parse_work_items_recent_args

LIST_DEFAULT_TOP = 10
LIST_MAX_TOP = 50
COMMENTS_DEFAULT_TOP = 50
COMMENTS_MAX_TOP = 200

WORK_ITEM_LINKING_POLICY = "Work item linking"
APPROVE_VOTE = 10

USAGE = {
    "smoke": "Usage: smoke",
    "config": "Usage: config",
    "init": "Usage: init [--local]",
    "repos": "Usage: repos",
    "branches": "Usage: branches [repo]",
    "workitem-get": "Usage: workitem-get <id> [--raw] [--expand=all|fields|links|relations]",
    "workitems-recent": WORKITEMS_RECENT_USAGE,
    "workitem-comments": "Usage: workitem-comments <id> [top] [--top=<n>] [--order=asc|desc]",
    "workitem-comment-add": 'Usage: workitem-comment-add <id> --text="..." [--file=path]',
    "workitem-comment-update": 'Usage: workitem-comment-update <id> <commentId> --text="..." [--file=path]',
    "prs": "Usage: prs [status] [top] [repo]",
    "pr-get": "Usage: pr-get <id> [repo]",
    "pr-create": (
        "Usage: pr-create --title=... --source=feature/x --target=develop "
        "[--description=...] [--repo=...] [--work-items=123,456]"
    ),
    "pr-update": "Usage: pr-update <id> [--title=...] [--description=...] [--repo=...] [--work-items=123,456]",
    "pr-approve": "Usage: pr-approve <id> [repo]",
    "pr-autocomplete": "Usage: pr-autocomplete <id> [repo]",
    "pr-cherry-pick": "Usage: pr-cherry-pick <id> --target=<branch> [--topic=<branch>] [--repo=<repo>]",
    "builds": "Usage: builds [top]",
}


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def _parse(
    command: str,
    args: Sequence[str],
    allowed: Iterable[str] = (),
    max_positionals: int = 0,
) -> ParsedOptions:
    usage = USAGE[command]
    parsed = parse_option_args(args)
    ensure_allowed_options(parsed.options, allowed, command, usage)
    if len(parsed.positionals) > max_positionals:
        raise UsageError(f"Too many arguments for {command}.", usage=usage)
    return parsed


def _positional(parsed: ParsedOptions, index: int) -> Optional[str]:
    if index < len(parsed.positionals):
        return parsed.positionals[index]
    return None


def pick_repo(cfg: ADOConfig, value: Optional[str] = None) -> str:
    return value or cfg.repo


def project_path(cfg: ADOConfig, suffix: str) -> str:
    return f"/{encode_path_segment(cfg.project)}{suffix}"


def repo_path(cfg: ADOConfig, repo: str, suffix: str = "") -> str:
    return project_path(cfg, f"/_apis/git/repositories/{encode_path_segment(repo)}{suffix}")


def pull_request_path(cfg: ADOConfig, repo: str, pr_id: int) -> str:
    return repo_path(cfg, repo, f"/pullrequests/{pr_id}")


def _display_name(identity: Any) -> Optional[str]:
    if isinstance(identity, dict):
        return identity.get("displayName")
    return None


def _identity_id(identity: Any) -> Optional[str]:
    if isinstance(identity, dict):
        return identity.get("id")
    return None


# ---- lookups shared by several commands ----


def get_latest_work_item(cfg: ADOConfig) -> Optional[Dict[str, Any]]:
    wiql_result = ado_request(
        cfg,
        project_path(cfg, "/_apis/wit/wiql?$top=1"),
        method="POST",
        body={"query": build_recent_work_items_wiql()},
    )
    work_items = (wiql_result or {}).get("workItems") or []
    work_item_id = work_items[0].get("id") if work_items else None
    if not work_item_id:
        return None
    return ado_request(cfg, project_path(cfg, f"/_apis/wit/workitems/{work_item_id}"))


def get_latest_pull_request(cfg: ADOConfig, repo: str) -> Optional[Dict[str, Any]]:
    result = ado_request(cfg, repo_path(cfg, repo, "/pullrequests?searchCriteria.status=all&$top=1"))
    pull_requests = (result or {}).get("value") or []
    return pull_requests[0] if pull_requests else None


def policy_scope_matches(scope: Dict[str, Any], repository_id: Optional[str], target_ref_name: Optional[str]) -> bool:
    repo_ok = not scope.get("repositoryId") or scope.get("repositoryId") == repository_id
    ref_ok = not scope.get("refName") or scope.get("refName") == target_ref_name
    match_kind_ok = not scope.get("matchKind") or scope.get("matchKind") in ("Exact", "Prefix")
    return repo_ok and ref_ok and match_kind_ok


def select_optional_work_item_policy_ids(
    policies: Iterable[Dict[str, Any]],
    repository_id: Optional[str],
    target_ref_name: Optional[str],
) -> List[int]:
    """
    Ids of enabled, non-blocking "Work item linking" policies that apply to
    the PR's repository and target branch. A policy without scopes applies
    everywhere.
    """
    ids: List[int] = []
    for policy in policies:
        if not isinstance(policy, dict):
            continue
        if (policy.get("type") or {}).get("displayName") != WORK_ITEM_LINKING_POLICY:
            continue
        if not policy.get("isEnabled") or policy.get("isBlocking"):
            continue

        policy_id = policy.get("id")
        if policy_id is None:
            continue

        scopes = (policy.get("settings") or {}).get("scope")
        if not isinstance(scopes, list) or not scopes:
            ids.append(policy_id)
            continue

        if any(
            policy_scope_matches(scope, repository_id, target_ref_name) for scope in scopes if isinstance(scope, dict)
        ):
            ids.append(policy_id)
    return ids


def get_optional_work_item_policy_ids(
    cfg: ADOConfig,
    repository_id: Optional[str],
    target_ref_name: Optional[str],
) -> List[int]:
    policies = ado_request(cfg, project_path(cfg, "/_apis/policy/configurations"))
    return select_optional_work_item_policy_ids((policies or {}).get("value") or [], repository_id, target_ref_name)


def link_work_items_to_pr(cfg: ADOConfig, pr: Optional[Dict[str, Any]], work_item_ids: Sequence[int]) -> None:
    artifact_url = build_pull_request_artifact_url(pr)
    if not artifact_url:
        raise ADODomainError("Unable to resolve PR artifact URL required to link work items.")

    for work_item_id in work_item_ids:
        ado_request(
            cfg,
            project_path(cfg, f"/_apis/wit/workitems/{work_item_id}"),
            method="PATCH",
            body=artifact_link_patch(artifact_url),
            content_type=JSON_PATCH_CONTENT_TYPE,
        )
        print(f"Linked work item #{work_item_id} to PR #{(pr or {}).get('pullRequestId')}")


def resolve_comment_text(options: Dict[str, OptionValue], usage: str) -> str:
    text = options.get("text") if isinstance(options.get("text"), str) else None
    file_option = options.get("file")
    if (not text or not text.strip()) and isinstance(file_option, str):
        try:
            text = Path(file_option).read_text(encoding="utf-8")
        except OSError as exc:
            raise UsageError(f"Cannot read comment file {file_option}: {exc.strerror or exc}", usage=usage) from exc
        except UnicodeDecodeError as exc:
            raise UsageError(f"Cannot read comment file {file_option}: not valid UTF-8 text.", usage=usage) from exc

    if not text or not text.strip():
        raise UsageError("Either --text or --file must provide a non-empty comment body.", usage=usage)
    return text


# ---- command handlers ----


def cmd_smoke(cfg: ADOConfig, args: Sequence[str]) -> int:
    _parse("smoke", args)
    work_item = get_latest_work_item(cfg)
    pull_request = get_latest_pull_request(cfg, pick_repo(cfg))

    print("Azure DevOps connectivity check")
    print("--------------------------------")
    if work_item:
        title = (work_item.get("fields") or {}).get("System.Title") or "(no title)"
        print(f"Work item: #{work_item.get('id')} - {title}")
    else:
        print("Work item: none found")

    if pull_request:
        print(f"Pull request: #{pull_request.get('pullRequestId')} - {pull_request.get('title') or '(no title)'}")
    else:
        print("Pull request: none found")
    return 0


def cmd_config(cfg: ADOConfig, args: Sequence[str]) -> int:
    _parse("config", args)
    print(f"pat: {censor_pat(cfg.pat)}")
    print(f"collection_url: {cfg.collection_url}")
    print(f"project: {cfg.project}")
    print(f"repo: {cfg.repo}")
    print(f"insecure_tls: {'yes' if cfg.insecure_tls else 'no'}")
    return 0


def cmd_init(args: Sequence[str]) -> int:
    parsed = _parse("init", args, allowed={"local"})
    run_init_wizard(local=is_truthy_flag(parsed.options.get("local")))
    return 0


def cmd_repos(cfg: ADOConfig, args: Sequence[str]) -> int:
    _parse("repos", args)
    result = ado_request(cfg, project_path(cfg, "/_apis/git/repositories?$top=100"))
    for repo in (result or {}).get("value") or []:
        print(f"{repo.get('id')}\t{repo.get('name')}")
    return 0


def cmd_branches(cfg: ADOConfig, args: Sequence[str]) -> int:
    parsed = _parse("branches", args, allowed={"repo"}, max_positionals=1)
    repo = pick_repo(cfg, option_string(parsed.options, "repo") or _positional(parsed, 0))
    result = ado_request(cfg, repo_path(cfg, repo, "/refs?filter=heads/&$top=200"))
    for ref in (result or {}).get("value") or []:
        print(str(ref.get("name") or "").replace("refs/heads/", "", 1))
    return 0


def cmd_workitem_get(cfg: ADOConfig, args: Sequence[str]) -> int:
    usage = USAGE["workitem-get"]
    work_item_id = require_id(args[0] if args else None, usage)
    parsed = _parse("workitem-get", args[1:], allowed={"raw", "expand"})

    raw_output = is_truthy_flag(parsed.options.get("raw"))
    expand = option_string(parsed.options, "expand")
    query = f"?$expand={encode_query_value(expand)}" if expand else ""

    result = ado_request(cfg, project_path(cfg, f"/_apis/wit/workitems/{work_item_id}{query}"))
    if raw_output:
        _print_json(result)
        return 0

    result = result or {}
    fields = result.get("fields") or {}
    _print_json(
        {
            "id": result.get("id"),
            "title": fields.get("System.Title"),
            "state": fields.get("System.State"),
            "type": fields.get("System.WorkItemType"),
            "assignedTo": _display_name(fields.get("System.AssignedTo")),
            "changedDate": fields.get("System.ChangedDate"),
            "url": result.get("url"),
        }
    )
    return 0


def cmd_workitems_recent(cfg: ADOConfig, args: Sequence[str]) -> int:
    parsed = parse_work_items_recent_args(args)
    wiql_result = ado_request(
        cfg,
        project_path(cfg, f"/_apis/wit/wiql?$top={parsed.top}"),
        method="POST",
        body={"query": build_recent_work_items_wiql(parsed.filters)},
    )
    for work_item in (wiql_result or {}).get("workItems") or []:
        print(work_item.get("id"))
    return 0


def cmd_workitem_comments(cfg: ADOConfig, args: Sequence[str]) -> int:
    usage = USAGE["workitem-comments"]
    work_item_id = require_id(args[0] if args else None, usage)
    parsed = _parse("workitem-comments", args[1:], allowed={"top", "order"}, max_positionals=1)

    top_candidate = parsed.options.get("top")
    if top_candidate is None:
        top_candidate = _positional(parsed, 0)
    top = to_bounded_top(top_candidate, default=COMMENTS_DEFAULT_TOP, maximum=COMMENTS_MAX_TOP)

    order_raw = (option_string(parsed.options, "order") or "desc").lower()
    order = "asc" if order_raw == "asc" else "desc"

    result = ado_request(
        cfg,
        project_path(cfg, f"/_apis/wit/workItems/{work_item_id}/comments?$top={top}&order={order}"),
        api_version=COMMENTS_API_VERSION,
    )
    _print_json(result)
    return 0


def cmd_workitem_comment_add(cfg: ADOConfig, args: Sequence[str]) -> int:
    usage = USAGE["workitem-comment-add"]
    work_item_id = require_id(args[0] if args else None, usage)
    parsed = _parse("workitem-comment-add", args[1:], allowed={"text", "file"})
    text = resolve_comment_text(parsed.options, usage)

    result = ado_request(
        cfg,
        project_path(cfg, f"/_apis/wit/workItems/{work_item_id}/comments"),
        method="POST",
        body={"text": text},
        api_version=COMMENTS_API_VERSION,
    )
    result = result or {}
    _print_json(
        {
            "id": result.get("id"),
            "workItemId": work_item_id,
            "createdBy": _display_name(result.get("createdBy")),
            "createdDate": result.get("createdDate"),
            "text": result.get("text") or text,
        }
    )
    return 0


def cmd_workitem_comment_update(cfg: ADOConfig, args: Sequence[str]) -> int:
    usage = USAGE["workitem-comment-update"]
    work_item_id = require_id(args[0] if args else None, usage)
    comment_id = require_id(args[1] if len(args) > 1 else None, usage)
    parsed = _parse("workitem-comment-update", args[2:], allowed={"text", "file"})
    text = resolve_comment_text(parsed.options, usage)

    result = ado_request(
        cfg,
        project_path(cfg, f"/_apis/wit/workItems/{work_item_id}/comments/{comment_id}"),
        method="PATCH",
        body={"text": text},
        api_version=COMMENTS_API_VERSION,
    )
    result = result or {}
    _print_json(
        {
            "id": result.get("id") or comment_id,
            "workItemId": work_item_id,
            "modifiedBy": _display_name(result.get("modifiedBy")),
            "modifiedDate": result.get("modifiedDate"),
            "text": result.get("text") or text,
        }
    )
    return 0


def cmd_prs(cfg: ADOConfig, args: Sequence[str]) -> int:
    parsed = _parse("prs", args, allowed={"status", "top", "repo"}, max_positionals=3)
    status = option_string(parsed.options, "status") or _positional(parsed, 0) or "active"
    top_candidate = parsed.options.get("top")
    if top_candidate is None:
        top_candidate = _positional(parsed, 1)
    top = to_bounded_top(top_candidate, default=LIST_DEFAULT_TOP, maximum=LIST_MAX_TOP)
    repo = pick_repo(cfg, option_string(parsed.options, "repo") or _positional(parsed, 2))

    result = ado_request(
        cfg,
        repo_path(cfg, repo, f"/pullrequests?searchCriteria.status={encode_query_value(status)}&$top={top}"),
    )
    for pr in (result or {}).get("value") or []:
        created_by = _display_name(pr.get("createdBy")) or "unknown"
        print(f"#{pr.get('pullRequestId')}\t[{pr.get('status')}]\t{pr.get('title')}\t({created_by})")
    return 0


def _pr_id_and_repo(command: str, cfg: ADOConfig, args: Sequence[str]) -> Tuple[int, str]:
    usage = USAGE[command]
    pr_id = require_id(args[0] if args else None, usage)
    parsed = _parse(command, args[1:], allowed={"repo"}, max_positionals=1)
    repo = pick_repo(cfg, option_string(parsed.options, "repo") or _positional(parsed, 0))
    return pr_id, repo


def cmd_pr_get(cfg: ADOConfig, args: Sequence[str]) -> int:
    pr_id, repo = _pr_id_and_repo("pr-get", cfg, args)
    pr = ado_request(cfg, pull_request_path(cfg, repo, pr_id)) or {}
    _print_json(
        {
            "id": pr.get("pullRequestId"),
            "title": pr.get("title"),
            "status": pr.get("status"),
            "createdBy": _display_name(pr.get("createdBy")),
            "createdById": _identity_id(pr.get("createdBy")),
            "sourceRef": pr.get("sourceRefName"),
            "targetRef": pr.get("targetRefName"),
            "url": pr.get("url"),
        }
    )
    return 0


def cmd_pr_create(cfg: ADOConfig, args: Sequence[str]) -> int:
    usage = USAGE["pr-create"]
    parsed = _parse(
        "pr-create",
        args,
        allowed={"title", "source", "target", "description", "repo", "work-items"},
    )
    options = parsed.options
    title = option_string(options, "title")
    source = option_string(options, "source")
    target = option_string(options, "target")
    if not title or not source or not target:
        raise UsageError("pr-create requires --title, --source and --target.", usage=usage)

    description = options.get("description") if isinstance(options.get("description"), str) else ""
    repo = pick_repo(cfg, option_string(options, "repo"))
    work_item_ids = parse_work_item_ids(option_string(options, "work-items"))

    body = {
        "title": title,
        "description": description,
        "sourceRefName": to_ref_name(source),
        "targetRefName": to_ref_name(target),
    }
    created = ado_request(cfg, repo_path(cfg, repo, "/pullrequests"), method="POST", body=body) or {}
    print(f"Created PR #{created.get('pullRequestId')}: {created.get('title')}")

    if work_item_ids:
        created_pr = ado_request(cfg, pull_request_path(cfg, repo, created.get("pullRequestId")))
        link_work_items_to_pr(cfg, created_pr, work_item_ids)
    return 0


def cmd_pr_update(cfg: ADOConfig, args: Sequence[str]) -> int:
    usage = USAGE["pr-update"]
    pr_id = require_id(args[0] if args else None, usage)
    parsed = _parse("pr-update", args[1:], allowed={"title", "description", "repo", "work-items"})
    options = parsed.options

    repo = pick_repo(cfg, option_string(options, "repo"))
    work_item_ids = parse_work_item_ids(option_string(options, "work-items"))
    body: Dict[str, str] = {}
    for key in ("title", "description"):
        value = options.get(key)
        if isinstance(value, str):
            body[key] = value

    if not body and not work_item_ids:
        raise UsageError("Nothing to update.", usage=usage)

    path = pull_request_path(cfg, repo, pr_id)
    if body:
        updated = ado_request(cfg, path, method="PATCH", body=body)
        print(f"Updated PR #{(updated or {}).get('pullRequestId')}: {(updated or {}).get('title')}")
    else:
        updated = ado_request(cfg, path)

    if work_item_ids:
        link_work_items_to_pr(cfg, updated, work_item_ids)
    return 0


def cmd_pr_approve(cfg: ADOConfig, args: Sequence[str]) -> int:
    pr_id, repo = _pr_id_and_repo("pr-approve", cfg, args)
    pr = ado_request(cfg, pull_request_path(cfg, repo, pr_id)) or {}
    reviewer_id = _identity_id(pr.get("createdBy"))
    if not reviewer_id:
        raise ADODomainError("Could not determine reviewer id from PR createdBy.")

    reviewer_path = pull_request_path(cfg, repo, pr_id) + f"/reviewers/{encode_path_segment(reviewer_id)}"
    ado_request(cfg, reviewer_path, method="PUT", body={"vote": APPROVE_VOTE})
    print(f"Approved PR #{pr_id} as reviewer {reviewer_id}")
    return 0


def cmd_pr_autocomplete(cfg: ADOConfig, args: Sequence[str]) -> int:
    pr_id, repo = _pr_id_and_repo("pr-autocomplete", cfg, args)
    path = pull_request_path(cfg, repo, pr_id)
    pr = ado_request(cfg, path) or {}
    user_id = _identity_id(pr.get("createdBy"))
    if not user_id:
        raise ADODomainError("Could not determine user id from PR createdBy.")

    ignored_policy_ids = get_optional_work_item_policy_ids(
        cfg,
        (pr.get("repository") or {}).get("id"),
        pr.get("targetRefName"),
    )
    ado_request(
        cfg,
        path,
        method="PATCH",
        body={
            "autoCompleteSetBy": {"id": user_id},
            "completionOptions": {
                "deleteSourceBranch": True,
                "autoCompleteIgnoreConfigIds": ignored_policy_ids,
            },
        },
    )

    if ignored_policy_ids:
        joined = ", ".join(str(policy_id) for policy_id in ignored_policy_ids)
        print(f"Enabled auto-complete for PR #{pr_id} (optional linked work item policies ignored: {joined})")
    else:
        print(f"Enabled auto-complete for PR #{pr_id}")
    return 0


def cmd_pr_cherry_pick(cfg: ADOConfig, args: Sequence[str]) -> int:
    parsed = parse_cherry_pick_args(args)
    repo = pick_repo(cfg, parsed.repo)
    generated_ref_name = build_generated_ref_name(parsed.pr_id, parsed.target, parsed.topic)

    result = ado_request(
        cfg,
        repo_path(cfg, repo, "/cherryPicks"),
        method="POST",
        body={
            "source": {"pullRequestId": parsed.pr_id},
            "ontoRefName": to_ref_name(parsed.target),
            "generatedRefName": generated_ref_name,
        },
    ) or {}
    print(
        f"Queued cherry-pick #{result.get('cherryPickId')} of PR #{parsed.pr_id} onto {parsed.target} "
        f"[{result.get('status') or 'queued'}] -> {generated_ref_name}"
    )
    return 0


def cmd_builds(cfg: ADOConfig, args: Sequence[str]) -> int:
    parsed = _parse("builds", args, allowed={"top"}, max_positionals=1)
    top_candidate = parsed.options.get("top")
    if top_candidate is None:
        top_candidate = _positional(parsed, 0)
    top = to_bounded_top(top_candidate, default=LIST_DEFAULT_TOP, maximum=LIST_MAX_TOP)

    result = ado_request(cfg, project_path(cfg, f"/_apis/build/builds?$top={top}&queryOrder=queueTimeDescending"))
    for build in (result or {}).get("value") or []:
        definition = (build.get("definition") or {}).get("name") or "unknown"
        print(
            f"#{build.get('id')}\t{build.get('status')}/{build.get('result') or 'n/a'}\t"
            f"{definition}\t{build.get('sourceBranch') or ''}"
        )
    return 0


COMMANDS: Dict[str, Callable[[ADOConfig, Sequence[str]], int]] = {
    "smoke": cmd_smoke,
    "config": cmd_config,
    "repos": cmd_repos,
    "branches": cmd_branches,
    "workitem-get": cmd_workitem_get,
    "workitems-recent": cmd_workitems_recent,
    "workitem-comments": cmd_workitem_comments,
    "workitem-comment-add": cmd_workitem_comment_add,
    "workitem-comment-update": cmd_workitem_comment_update,
    "prs": cmd_prs,
    "pr-get": cmd_pr_get,
    "pr-create": cmd_pr_create,
    "pr-update": cmd_pr_update,
    "pr-approve": cmd_pr_approve,
    "pr-autocomplete": cmd_pr_autocomplete,
    "pr-cherry-pick": cmd_pr_cherry_pick,
    "builds": cmd_builds,
}
