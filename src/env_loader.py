from __future__ import annotations

import os
from pathlib import Path


def load_dotenv_if_present(path: str | None = None) -> None:
    """
    Lightweight .env loader used for local runs.

    - Reads KEY=VALUE pairs from the given file (default: ".env" in CWD).
    - Ignores empty lines and comments starting with "#".
    - Strips one level of matching quotes around values.
    - Does *not* overwrite variables that are already present in os.environ.
    """
    env_path = Path(path or ".env")
    if not env_path.exists():
        return

    try:
        text = env_path.read_text(encoding="utf-8")
    except OSError:
        return

    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
            value = value[1:-1]
        if not key:
            continue
        if key not in os.environ:
            os.environ[key] = value


__all__ = ["load_dotenv_if_present"]
