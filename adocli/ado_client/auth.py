from __future__ import annotations

import base64
from typing import Dict


def basic_auth_header_from_pat(pat: str) -> Dict[str, str]:
    # Blank username, PAT as the password.
    token = base64.b64encode(f":{pat}".encode("utf-8")).decode("ascii")
    return {"Authorization": f"Basic {token}"}


def request_headers(pat: str, content_type: str) -> Dict[str, str]:
    headers: Dict[str, str] = {
        "Accept": "application/json",
        "Content-Type": content_type,
    }
    headers.update(basic_auth_header_from_pat(pat))
    return headers
