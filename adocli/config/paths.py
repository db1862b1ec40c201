from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping, Optional

LOCAL_CONFIG_FILENAME = "ado.json"
GLOBAL_CONFIG_FILENAME = "config.json"


def config_dir(environ: Optional[Mapping[str, str]] = None) -> Path:
    env = os.environ if environ is None else environ
    xdg = env.get("XDG_CONFIG_HOME", "").strip()
    base = Path(xdg) if xdg else Path.home() / ".config"
    return base / "ado"


def global_config_path(environ: Optional[Mapping[str, str]] = None) -> Path:
    return config_dir(environ) / GLOBAL_CONFIG_FILENAME


def local_config_path(cwd: Optional[Path] = None) -> Path:
    return (cwd or Path.cwd()) / LOCAL_CONFIG_FILENAME
