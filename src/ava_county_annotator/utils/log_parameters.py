from __future__ import annotations

from dataclasses import asdict, is_dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional


def _as_dict(params: Any) -> Dict[str, Any]:
    if is_dataclass(params):
        return asdict(params)
    if isinstance(params, Mapping):
        return dict(params)
    return {"value": repr(params)}


def _fmt(value: Any) -> str:
    # Paths and sequences read better without their repr noise
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    return str(value)


def log_parameters(
    entrypoint_name: str,
    params: Any,
    docs: Optional[Mapping[str, str]] = None,
    extra: Optional[Mapping[str, Any]] = None,
    *,
    secret_keys: tuple[str, ...] = ("password", "database_url"),
) -> List[str]:
    """
    Print a parameter block for an entrypoint and return its lines.

    - params can be a dataclass instance or a plain dict-like.
    - docs maps param_name -> human-readable description.
    - extra lets you add contextual fields like config path or log file.
    - values whose key contains one of `secret_keys` are masked.
    """
    docs = docs or {}
    extra = extra or {}
    data = _as_dict(params)

    lines = [f"[ENTRYPOINT] {entrypoint_name}", "[PARAMETERS]"]
    for key, value in list(extra.items()) + list(data.items()):
        shown = "***" if any(s in key.lower() for s in secret_keys) and value else _fmt(value)
        meaning = docs.get(key, "")
        lines.append(f"  {key} = {shown}    ({meaning})" if meaning else f"  {key} = {shown}")

    print()
    print("_____________________________________________________________")
    for line in lines:
        print(line)
    print("-" * 60)
    return lines
