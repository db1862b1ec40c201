from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from adocli.ado_client.errors import ConfigError
from adocli.config.paths import global_config_path, local_config_path
from adocli.config.settings import censor_pat, is_placeholder, load_config_file, save_config_file


def _display_value(key: str, value: Any) -> str:
    if value is None or value == "":
        return "<not set>"
    if key == "pat":
        return censor_pat(str(value))
    return str(value)


def render_config_summary(values: Mapping[str, Any], target: Path) -> str:
    width = 72
    line = "=" * width
    title = "ADO CLI SETUP"
    sections = [
        line,
        f"{title:^{width}}",
        line,
        f"CONFIG FILE    : {target}",
        f"PAT            : {_display_value('pat', values.get('pat'))}",
        f"COLLECTION URL : {_display_value('collectionUrl', values.get('collectionUrl'))}",
        f"PROJECT        : {_display_value('project', values.get('project'))}",
        f"REPOSITORY     : {_display_value('repo', values.get('repo'))}",
        f"INSECURE TLS   : {'yes' if values.get('insecure') is True else 'no'}",
        line,
    ]
    return "\n".join(sections)


def _prompt_input(label: str, current: Optional[str] = None, secret: bool = False) -> Optional[str]:
    shown = None
    if current:
        shown = censor_pat(current) if secret else current
    suffix = f" [{shown}]" if shown else ""
    value = input(f"{label}{suffix}: ").strip()
    if not value:
        return current
    return value


def _prompt_yes_no(label: str, current: bool) -> bool:
    default = "Y/n" if current else "y/N"
    value = input(f"{label} ({default}): ").strip().lower()
    if not value:
        return current
    return value in ("y", "yes")


def collect_config_values(existing: Mapping[str, Any], include_pat: bool = True) -> Dict[str, Any]:
    values: Dict[str, Any] = dict(existing)

    if include_pat:
        values["pat"] = _prompt_input("Personal access token", existing.get("pat"), secret=True)

    for key, label in (
        ("collectionUrl", "Collection URL (e.g. https://dev.azure.com/MyOrg)"),
        ("project", "Project"),
        ("repo", "Default repository"),
    ):
        current = existing.get(key)
        if isinstance(current, str) and is_placeholder(current):
            current = None
        value = _prompt_input(label, current if isinstance(current, str) else None)
        if value is not None:
            value = value.rstrip("/") if key == "collectionUrl" else value
        values[key] = value

    values["insecure"] = _prompt_yes_no("Allow insecure TLS (self-signed certificates)", existing.get("insecure") is True)
    return values


def run_init_wizard(
    local: bool = False,
    cwd: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Path:
    """
    Interactively write the global config file, or ``./ado.json`` when
    ``local`` is set. The PAT is only asked for in the global file so it does
    not end up next to project sources.
    """
    target = local_config_path(cwd) if local else global_config_path(environ)
    existing = load_config_file(target)

    print(render_config_summary(existing, target))
    values = collect_config_values(existing, include_pat=not local)
    try:
        save_config_file(target, values)
    except OSError as exc:
        raise ConfigError(f"Cannot write config file {target}: {exc.strerror or exc}") from exc
    print(render_config_summary(values, target))
    print(f"Configuration saved to {target}")
    return target
