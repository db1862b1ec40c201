from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ADOConfig:
    pat: str
    collection_url: str
    project: str
    repo: str
    insecure_tls: bool = False
