from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from pydantic import ValidationError

from hostwatch.core.config.models import AgentConfig
from hostwatch.core.errors import ConfigError

DEFAULT_CONFIG_PATH = os.path.join("config", "hostwatch.json")


@dataclass(frozen=True)
class ReadResult:
    ok: bool
    data: Dict[str, Any]
    error: Optional[str] = None


def read_json_file(path: str) -> ReadResult:
    if not os.path.exists(path):
        return ReadResult(ok=False, data={}, error="missing")
    try:
        with open(path, "r", encoding="utf-8") as f:
            obj = json.load(f)
        if not isinstance(obj, dict):
            return ReadResult(ok=False, data={}, error="not_object")
        return ReadResult(ok=True, data=obj)
    except json.JSONDecodeError as e:
        return ReadResult(ok=False, data={}, error=f"corrupt_json:{e}")
    except OSError as e:
        return ReadResult(ok=False, data={}, error=str(e))


def atomic_write_json(path: str, data: Dict[str, Any]) -> None:
    d = os.path.dirname(path) or "."
    os.makedirs(d, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=".tmp_", suffix=".json", dir=d)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False, sort_keys=True)
            f.write("\n")
        os.replace(tmp, path)
    finally:
        if os.path.exists(tmp):
            os.remove(tmp)


def _deep_merge(base: Dict[str, Any], patch: Mapping[str, Any]) -> Dict[str, Any]:
    out = dict(base)
    for k, v in patch.items():
        if isinstance(v, Mapping) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


def load_config(path: Optional[str] = None, overrides: Optional[Mapping[str, Any]] = None) -> AgentConfig:
    """
    Load the agent config.

    A missing file means built-in defaults. Unreadable or invalid content is a
    ConfigError; nothing is silently repaired. `overrides` (nested dict, e.g.
    from CLI flags) is merged over the file before validation.
    """
    data: Dict[str, Any] = {}
    if path:
        res = read_json_file(path)
        if res.ok:
            data = res.data
        elif res.error != "missing":
            raise ConfigError(f"Unable to read config file {path}.", path=path, error=res.error)
    if overrides:
        data = _deep_merge(data, overrides)
    try:
        return AgentConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError("Invalid configuration.", path=path or "", errors=e.errors(include_url=False)) from e


def save_config(path: str, cfg: AgentConfig) -> None:
    atomic_write_json(path, cfg.model_dump(mode="json"))
