from __future__ import annotations

from pathlib import Path
from typing import Union, Any, Dict
import hashlib
import json
import random

import yaml

JSON = Dict[str, Any]


def stable_hash(*parts: Any) -> str:

    payload = json.dumps(
        parts,
        separators=(",", ":"),
        sort_keys=True,
        default=str
    )

    return hashlib.sha256(
        payload.encode("utf-8")
        ).hexdigest()[:16]


def derive_rng(seed: int, key: Any) -> random.Random:
    """Independent, reproducible generator per (seed, key)."""

    h = hashlib.sha256(
        f"{seed}:{key}".encode("utf-8")
    ).digest()

    seed_int = int.from_bytes(
        h[:8], "big", signed=False
        )

    return random.Random(seed_int)


def _canonical(value: Any) -> Any:

    # bool is an int subclass but JSON keeps true and 1 apart
    if isinstance(value, bool):
        return value

    if isinstance(value, float) and value.is_integer():
        return int(value)

    if isinstance(value, (list, tuple)):
        return [_canonical(v) for v in value]

    if isinstance(value, dict):
        return {k: _canonical(v) for k, v in value.items()}

    return value


def value_key(value: Any) -> str:
    """
    Equality key for mocked values; lists and dicts are unhashable.

    Numbers compare by value, so 1 and 1.0 share a key.
    """

    return stable_hash(_canonical(value))


def read_schema_file(path: Union[str, Path]) -> JSON:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Schema not found: {p}")

    raw = p.read_text(encoding="utf-8").strip()
    if not raw:
        raise ValueError(f"Schema file is empty: {p}")

    # Try JSON first, then YAML
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        pass

    try:
        return yaml.safe_load(raw) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"Failed to parse YAML schema: {p}") from e
