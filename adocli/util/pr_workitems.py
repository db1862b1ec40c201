from __future__ import annotations

import math
from typing import Any, Dict, List, Optional


def parse_work_item_ids(raw_value: Optional[str]) -> List[int]:
    """
    Parse a comma-separated id list such as ``"123, 456"``.

    Non-numeric, fractional and non-positive entries are dropped; duplicates
    keep their first position.
    """
    if not raw_value:
        return []

    ids: List[int] = []
    for part in raw_value.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            numeric = float(part)
        except ValueError:
            continue
        if not math.isfinite(numeric):
            continue
        if numeric <= 0 or not numeric.is_integer():
            continue
        value = int(numeric)
        if value not in ids:
            ids.append(value)
    return ids


def build_pull_request_artifact_url(pr: Optional[Dict[str, Any]]) -> Optional[str]:
    if not pr:
        return None

    repository = pr.get("repository") or {}
    project = repository.get("project") or {}
    project_id = project.get("id")
    repo_id = repository.get("id")
    pr_id = pr.get("pullRequestId")

    if not project_id or not repo_id or not pr_id:
        return None
    return f"vstfs:///Git/PullRequestId/{project_id}%2F{repo_id}%2F{pr_id}"


def artifact_link_patch(artifact_url: str) -> List[Dict[str, Any]]:
    return [
        {
            "op": "add",
            "path": "/relations/-",
            "value": {
                "rel": "ArtifactLink",
                "url": artifact_url,
                "attributes": {"name": "Pull Request"},
            },
        }
    ]
