# src/hrsip/config/io.py
from __future__ import annotations
import json
from pathlib import Path
from typing import Any, Dict, Iterable

import pydantic
import yaml

from hrsip.errors import ConfigurationError
from .schema import Params

def _read_mapping(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise ConfigurationError(f"params file not found: {path}")
    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigurationError(f"{path}: cannot parse params file: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path}: params file must contain a mapping at the top level.")
    return data

def load_params_raw(path: Path) -> Dict[str, Any]:
    data = _read_mapping(path)
    return data.get("params", data)

def params_from_mapping(data: Dict[str, Any]) -> Params:
    try:
        return Params(**data)
    except pydantic.ValidationError as e:
        problems = [f"{'.'.join(str(p) for p in err['loc']) or 'params'}: {err['msg']}" for err in e.errors()]
        raise ConfigurationError(problems) from e

def load_params_typed(path: Path) -> Params:
    return params_from_mapping(load_params_raw(path))

def write_params(path: Path, params: Params) -> None:
    payload = {"params": params.model_dump()}
    if path.suffix.lower() == ".json":
        text = json.dumps(payload, indent=2)
    else:
        text = yaml.safe_dump(payload, sort_keys=False)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")

def apply_cli_overrides(params: Params, args, fields: Iterable[str]) -> Params:
    """CLI wins over the params file, but only for flags the user actually passed (non-None)."""
    update = {}
    for k in fields:
        v = getattr(args, k, None)
        if v is not None:
            update[k] = v
    if not update:
        return params
    return params_from_mapping({**params.model_dump(), **update})
