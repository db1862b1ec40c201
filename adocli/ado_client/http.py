from __future__ import annotations

import logging
from typing import Any, Optional

import requests
import urllib3

from adocli.ado_client.auth import request_headers
from adocli.ado_client.errors import ADORequestError
from adocli.ado_client.models import ADOConfig

logger = logging.getLogger(__name__)

API_VERSION = "7.0"
COMMENTS_API_VERSION = "7.0-preview.3"
JSON_PATCH_CONTENT_TYPE = "application/json-patch+json"

ERROR_PREVIEW_LIMIT = 350


def build_request_url(cfg: ADOConfig, path: str, api_version: str = API_VERSION) -> str:
    separator = "&" if "?" in path else "?"
    return f"{cfg.collection_url}{path}{separator}api-version={api_version}"


def ado_request(
    cfg: ADOConfig,
    path: str,
    method: str = "GET",
    body: Any = None,
    content_type: str = "application/json",
    api_version: str = API_VERSION,
) -> Optional[Any]:
    """
    Send one authenticated call to the configured collection.

    ``path`` is appended verbatim to the collection URL, so callers are
    responsible for encoding its segments. Returns the decoded JSON body, or
    None when the service answered with an empty body.
    """
    url = build_request_url(cfg, path, api_version)
    headers = request_headers(cfg.pat, content_type)

    if cfg.insecure_tls:
        urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    logger.debug("%s %s", method, url)
    resp = requests.request(method, url, headers=headers, json=body, verify=not cfg.insecure_tls)

    if not 200 <= resp.status_code < 300:
        preview = (resp.text or "").strip()[:ERROR_PREVIEW_LIMIT]
        raise ADORequestError(resp.status_code, preview)

    if not resp.text:
        return None
    return resp.json()
