from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from adocli.ado_client.errors import ConfigError
from adocli.ado_client.models import ADOConfig
from adocli.config.paths import global_config_path, local_config_path
from adocli.util.fs import atomic_write_json

logger = logging.getLogger(__name__)

DEFAULT_COLLECTION_URL = "https://dev.azure.com/<your-org>"
DEFAULT_PROJECT = "<your-project>"
DEFAULT_REPO = "<your-repository>"
PLACEHOLDER_MARKER = "<your-"

# (environment variable, config file key)
PAT_KEYS = ("DEVOPS_PAT", "pat")
COLLECTION_URL_KEYS = ("ADO_COLLECTION_URL", "collectionUrl")
PROJECT_KEYS = ("ADO_PROJECT", "project")
REPO_KEYS = ("ADO_REPO", "repo")
INSECURE_KEYS = ("ADO_INSECURE", "insecure")

CONFIG_FILE_KEYS = ("pat", "collectionUrl", "project", "repo", "insecure")

CONFIG_HINT = (
    "Set ADO_COLLECTION_URL, ADO_PROJECT and ADO_REPO, or run `ado init`.\n"
    'Example: ADO_COLLECTION_URL="https://dev.azure.com/MyOrg" ADO_PROJECT="MyProject" ADO_REPO="My Repo"'
)


def is_placeholder(value: str) -> bool:
    return PLACEHOLDER_MARKER in value


def censor_pat(pat: str) -> str:
    if len(pat) <= 8:
        return "****"
    return f"{pat[:4]}{'*' * (len(pat) - 8)}{pat[-4:]}"


def _normalize_optional_string(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    normalized = value.strip()
    if not normalized:
        return None
    return normalized


def _parse_insecure(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip():
        return value.strip().lower() in ("1", "true")
    return None


def load_config_file(path: Path) -> Dict[str, Any]:
    """
    Read a flat JSON config document.

    A missing file is an empty config. So is a malformed one, but that case
    is reported as a warning since the user probably meant something else.
    """
    if not path.exists():
        return {}

    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        logger.warning("Ignoring malformed config file %s: %s", path, exc)
        return {}
    except OSError as exc:
        logger.warning("Ignoring unreadable config file %s: %s", path, exc.strerror or exc)
        return {}

    if not isinstance(data, dict):
        logger.warning("Ignoring config file %s: expected a JSON object.", path)
        return {}
    return data


def load_file_config(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    return load_config_file(global_config_path(environ))


def load_local_config(cwd: Optional[Path] = None) -> Dict[str, Any]:
    return load_config_file(local_config_path(cwd))


def save_config_file(path: Path, values: Mapping[str, Any]) -> None:
    payload = {key: values[key] for key in CONFIG_FILE_KEYS if values.get(key) is not None}
    atomic_write_json(path, payload)


def resolve_config(
    environ: Optional[Mapping[str, str]] = None,
    cwd: Optional[Path] = None,
) -> ADOConfig:
    """
    Merge environment, ``./ado.json``, the global config file and the
    placeholder defaults, in that order of precedence.
    """
    env = os.environ if environ is None else environ
    local_cfg = load_local_config(cwd)
    global_cfg = load_file_config(env)
    layers = (local_cfg, global_cfg)

    def pick(keys: tuple) -> Optional[str]:
        env_key, file_key = keys
        value = _normalize_optional_string(env.get(env_key))
        if value is not None:
            return value
        for layer in layers:
            value = _normalize_optional_string(layer.get(file_key))
            if value is not None:
                return value
        return None

    pat = pick(PAT_KEYS)
    if not pat:
        raise ConfigError(
            "Missing DEVOPS_PAT environment variable.",
            hint=f"Set DEVOPS_PAT or add \"pat\" to {global_config_path(env)} (see `ado init`).",
        )

    collection_url = (pick(COLLECTION_URL_KEYS) or DEFAULT_COLLECTION_URL).rstrip("/")
    project = pick(PROJECT_KEYS) or DEFAULT_PROJECT
    repo = pick(REPO_KEYS) or DEFAULT_REPO

    if is_placeholder(collection_url) or is_placeholder(project) or is_placeholder(repo):
        raise ConfigError("ADO configuration is incomplete.", hint=CONFIG_HINT)

    insecure = _parse_insecure(env.get(INSECURE_KEYS[0]))
    for layer in layers:
        if insecure is not None:
            break
        insecure = _parse_insecure(layer.get(INSECURE_KEYS[1]))

    return ADOConfig(
        pat=pat,
        collection_url=collection_url,
        project=project,
        repo=repo,
        insecure_tls=bool(insecure),
    )
