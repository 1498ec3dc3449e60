from __future__ import annotations

import json
from typing import Any, List


def read_json_lines(path: str) -> List[List[Any]]:
    out: List[List[Any]] = []
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            out.append(json.loads(line))
    return out


def flatten_records(lines: List[List[Any]]) -> List[Any]:
    return [rec for batch in lines for rec in batch]
