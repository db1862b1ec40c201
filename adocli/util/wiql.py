from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from adocli.ado_client.errors import UsageError
from adocli.util.options import ensure_allowed_options, option_string, parse_option_args, to_bounded_top

WORKITEMS_RECENT_USAGE = "Usage: workitems-recent [top] [--tag=<tag>] [--type=<work-item-type>] [--state=<state>]"

RECENT_DEFAULT_TOP = 10
RECENT_MAX_TOP = 50


@dataclass(frozen=True)
class WorkItemFilters:
    tag: Optional[str] = None
    type: Optional[str] = None
    state: Optional[str] = None


@dataclass(frozen=True)
class WorkItemsRecentArgs:
    top: int
    filters: WorkItemFilters = field(default_factory=WorkItemFilters)


def escape_wiql_literal(value: str) -> str:
    return str(value).replace("'", "''")


def build_recent_work_items_wiql(filters: Optional[WorkItemFilters] = None) -> str:
    filters = filters or WorkItemFilters()
    clauses: List[str] = []

    if filters.type:
        clauses.append(f"[System.WorkItemType] = '{escape_wiql_literal(filters.type)}'")
    if filters.state:
        clauses.append(f"[System.State] = '{escape_wiql_literal(filters.state)}'")
    if filters.tag:
        clauses.append(f"[System.Tags] CONTAINS '{escape_wiql_literal(filters.tag)}'")

    where_clause = f" WHERE {' AND '.join(clauses)}" if clauses else ""
    return f"SELECT [System.Id] FROM WorkItems{where_clause} ORDER BY [System.ChangedDate] DESC"


def parse_work_items_recent_args(args: Sequence[str]) -> WorkItemsRecentArgs:
    parsed = parse_option_args(args)
    ensure_allowed_options(parsed.options, {"top", "tag", "type", "state"}, "workitems-recent", WORKITEMS_RECENT_USAGE)

    if len(parsed.positionals) > 1:
        raise UsageError("Too many arguments for workitems-recent.", usage=WORKITEMS_RECENT_USAGE)

    top_candidate = parsed.options.get("top")
    if top_candidate is None and parsed.positionals:
        top_candidate = parsed.positionals[0]

    return WorkItemsRecentArgs(
        top=to_bounded_top(top_candidate, default=RECENT_DEFAULT_TOP, maximum=RECENT_MAX_TOP),
        filters=WorkItemFilters(
            tag=option_string(parsed.options, "tag"),
            type=option_string(parsed.options, "type"),
            state=option_string(parsed.options, "state"),
        ),
    )
