"""
kubeplan/utils/flagbuilder.py

Turns a pydantic model whose fields are declared with
`kubeplan.models.etcd_manager.flag(...)` into a list of `--name=value` tokens.

Rules:
  - None, False, 0, "" and empty collections are omitted.
  - Booleans render as `true`.
  - Lists render once per value for `repeat` flags, otherwise comma-joined.
  - Dicts render as comma-joined `k=v` pairs, keys sorted.
  - The final token list is sorted, so output never depends on field order.
"""

from __future__ import annotations

from typing import Any, Dict, List

from pydantic import BaseModel


def _flag_options(extra: Any) -> Dict[str, Any]:
    return extra if isinstance(extra, dict) and "flag" in extra else {}


def _render(flag_name: str, value: Any, repeat: bool) -> List[str]:
    if value is None:
        return []
    if isinstance(value, bool):
        return [f"--{flag_name}=true"] if value else []
    if isinstance(value, (int, float)):
        return [f"--{flag_name}={value}"] if value else []
    if isinstance(value, str):
        return [f"--{flag_name}={value}"] if value else []
    if isinstance(value, (list, tuple)):
        if not value:
            return []
        if repeat:
            return [f"--{flag_name}={v}" for v in value]
        return [f"--{flag_name}={','.join(str(v) for v in value)}"]
    if isinstance(value, dict):
        if not value:
            return []
        pairs = ",".join(f"{k}={value[k]}" for k in sorted(value))
        return [f"--{flag_name}={pairs}"]
    raise TypeError(f"unsupported flag value type {type(value).__name__} for --{flag_name}")


def build_flags_list(options: BaseModel) -> List[str]:
    """
    Build the sorted flag list for a flag-annotated model.

    Args:
        options: A model whose fields carry `flag` metadata.

    Returns:
        Sorted `--name=value` tokens, e.g. ["--cluster-name=etcd", "--v=6"].

    Raises:
        TypeError: If a flagged field holds a value that has no flag rendering.
    """
    flags = [
        token
        for field_name, info in type(options).model_fields.items()
        for opts in [_flag_options(info.json_schema_extra)]
        if opts
        for token in _render(
            opts["flag"], getattr(options, field_name), bool(opts.get("repeat"))
        )
    ]
    return sorted(flags)


def build_flags(options: BaseModel) -> str:
    """The flag list joined with single spaces."""
    return " ".join(build_flags_list(options))
