from __future__ import annotations

import json
import logging
from pathlib import Path
import tempfile

from .models import SelectorOptions

CONFIG_DIR = Path.home() / ".shadowtagger"
OPTIONS_PATH = CONFIG_DIR / "options.json"
OPTIONS_KEY = "selectorOptions"

logger = logging.getLogger("shadowtagger.options")


def load_selector_options(config_path: Path | None = None) -> SelectorOptions:
    path = config_path or OPTIONS_PATH
    if not path.exists() or not path.is_file():
        return SelectorOptions()

    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError, TypeError) as exc:
        logger.warning("Ignoring unreadable options file %s: %s", path, exc)
        return SelectorOptions()

    if not isinstance(payload, dict):
        return SelectorOptions()
    return SelectorOptions.from_payload(payload.get(OPTIONS_KEY))


def save_selector_options(options: SelectorOptions, config_path: Path | None = None) -> tuple[bool, str | None]:
    path = config_path or OPTIONS_PATH

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        return False, f"Could not create config folder: {exc}"

    existing: dict = {}
    if path.is_file():
        try:
            loaded = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            loaded = None
        if isinstance(loaded, dict):
            existing = loaded
    existing[OPTIONS_KEY] = options.to_payload()

    payload = json.dumps(existing, ensure_ascii=True, indent=2, sort_keys=True)
    temp_path: Path | None = None
    try:
        with tempfile.NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            dir=str(path.parent),
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        ) as handle:
            handle.write(payload)
            handle.flush()
            temp_path = Path(handle.name)

        temp_path.replace(path)
    except OSError as exc:
        if temp_path and temp_path.exists():
            temp_path.unlink(missing_ok=True)
        return False, f"Could not write selector options: {exc}"

    return True, None
