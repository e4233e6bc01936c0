from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, List, Union

import yaml


def extract_floats(text: str) -> List[float]:
    """
    Extract floats/ints/scientific-notation numbers from arbitrary text.
    """
    pattern = r"[-+]?(?:\d*\.\d+|\d+)(?:[eE][-+]?\d+)?"
    return [float(x) for x in re.findall(pattern, text)]


def load_data(path: Union[str, Path]) -> Any:
    """
    Load a file into a Python object based on file extension.

    - .json -> parsed dict/list
    - .yaml/.yml -> parsed dict/list
    - otherwise -> raw text (str)

    This function is domain-neutral: it does NOT interpret the contents.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    suf = path.suffix.lower()
    text = path.read_text(encoding="utf-8", errors="ignore")

    if suf == ".json":
        return json.loads(text)

    if suf in (".yaml", ".yml"):
        return yaml.safe_load(text)

    # default: return raw text
    return text


def dump_data(obj: Any, path: Union[str, Path]) -> None:
    """Write obj as .json or .yaml depending on the extension (JSON otherwise)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    if path.suffix.lower() in (".yaml", ".yml"):
        path.write_text(yaml.safe_dump(obj, sort_keys=False), encoding="utf-8")
    else:
        path.write_text(json.dumps(obj, indent=2), encoding="utf-8")
