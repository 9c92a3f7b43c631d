"""Configuration constants and user settings for treetext."""

import json
import os
from dataclasses import asdict, dataclass, replace
from pathlib import Path

from loguru import logger

# Directory with data. An explicit TREETEXT_DATA_DIR wins; otherwise the first
# directory which exists is used, and the first entry is created if none does.
DATA_DIRECTORIES: list[Path] = [
    Path("~/.local/share/treetext").expanduser(),
    Path("~/.treetext").expanduser(),
    Path("~/.config/treetext").expanduser(),
]
DATA_DIR_ENV = "TREETEXT_DATA_DIR"

STATE_FILENAME = "state.json"
SETTINGS_FILENAME = "settings.json"

# Seconds to wait for the generation backend.
GENERATION_TIMEOUT: float = 120.0
DEFAULT_MODEL = "local-model"

DEFAULT_SYSTEM_PROMPT = (
    "You are a writing assistant. A user will provide you with text, a prompt, and the "
    "document's outline for context. Modify the text based on the user's prompt. "
    "Return only the modified text."
)
JSON_SYSTEM_PROMPT = "You are an expert writing assistant that only returns JSON."
NODE_SYSTEM_PROMPT = "You are an assistant that only responds in JSON."


def resolve_data_directory() -> Path:
    """Return the data directory to use (it may not exist yet)."""
    override = os.environ.get(DATA_DIR_ENV)
    if override:
        return Path(override).expanduser()
    for candidate in DATA_DIRECTORIES:
        if candidate.is_dir():
            return candidate
    return DATA_DIRECTORIES[0]


@dataclass(frozen=True)
class Settings:
    """User settings for the generation backend."""

    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    llm_base_url: str = ""
    model: str = DEFAULT_MODEL


def load_settings(data_dir: Path) -> Settings:
    """Read settings.json from ``data_dir``; environment variables override it."""
    settings = Settings()
    path = data_dir / SETTINGS_FILENAME
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raw = {}
    except json.JSONDecodeError:
        logger.warning("Ignoring unreadable settings file {}", path)
        raw = {}

    if isinstance(raw, dict):
        settings = replace(
            settings,
            system_prompt=raw.get("systemPrompt") or settings.system_prompt,
            llm_base_url=raw.get("openAIBaseUrl") or settings.llm_base_url,
            model=raw.get("model") or settings.model,
        )

    env_overrides = {
        "system_prompt": os.environ.get("TREETEXT_SYSTEM_PROMPT"),
        "llm_base_url": os.environ.get("TREETEXT_LLM_URL"),
        "model": os.environ.get("TREETEXT_MODEL"),
    }
    return replace(settings, **{k: v for k, v in env_overrides.items() if v})


def save_settings(data_dir: Path, settings: Settings) -> None:
    """Write settings.json in the same shape the settings dialog used."""
    data_dir.mkdir(parents=True, exist_ok=True)
    values = asdict(settings)
    payload = {
        "systemPrompt": values["system_prompt"],
        "openAIBaseUrl": values["llm_base_url"],
        "model": values["model"],
    }
    (data_dir / SETTINGS_FILENAME).write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
