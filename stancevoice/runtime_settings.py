##########################################################################
#                                                                        #
#  Central runtime settings hydration for config mappings + .env         #
#                                                                        #
##########################################################################

from __future__ import annotations

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Mapping


logger = logging.getLogger(__name__)


DEFAULT_RUNTIME_SETTINGS: dict[str, Any] = {
    "inference": {
        "default_ollama_host": "http://127.0.0.1:11434",
        "default_classifier_model": "llama3.2:latest",
        "default_tagger_model": "llama3.2:latest",
        "classifier_max_tokens": 16,
        "tagger_max_tokens": 512,
    },
    "merger": {
        "min_templates_per_stance": 4,
        "min_lexicon_per_pos": 6,
        "base_template_retention": 0.5,
        "base_lexicon_retention": 0.5,
    },
    "endpoints": [],
}


ENV_OVERRIDES: dict[str, tuple[tuple[str, ...], str]] = {
    "inference.default_ollama_host": (("STANCEVOICE_OLLAMA_HOST", "OLLAMA_HOST"), "str"),
    "inference.default_classifier_model": (("STANCEVOICE_CLASSIFIER_MODEL",), "str"),
    "inference.default_tagger_model": (("STANCEVOICE_TAGGER_MODEL",), "str"),
    "inference.classifier_max_tokens": (("STANCEVOICE_CLASSIFIER_MAX_TOKENS",), "int"),
    "inference.tagger_max_tokens": (("STANCEVOICE_TAGGER_MAX_TOKENS",), "int"),
    "merger.min_templates_per_stance": (("STANCEVOICE_MIN_TEMPLATES_PER_STANCE",), "int"),
    "merger.min_lexicon_per_pos": (("STANCEVOICE_MIN_LEXICON_PER_POS",), "int"),
    "merger.base_template_retention": (("STANCEVOICE_TEMPLATE_RETENTION",), "float"),
    "merger.base_lexicon_retention": (("STANCEVOICE_LEXICON_RETENTION",), "float"),
    "endpoints": (("STANCEVOICE_MODEL_ENDPOINTS", "MERGER_CONFIGS"), "json"),
}


def _coerce_env_value(raw_value: str, value_type: str) -> Any:
    if value_type == "str":
        return raw_value
    if value_type == "int":
        return int(raw_value)
    if value_type == "float":
        return float(raw_value)
    if value_type == "json":
        return json.loads(raw_value)
    return raw_value


def _deep_merge(base: dict[str, Any], incoming: dict[str, Any]) -> dict[str, Any]:
    for key, value in incoming.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def _path_parts(path: str) -> list[str]:
    return [part for part in path.split(".") if part]


def get_runtime_setting(settings: dict[str, Any], path: str, default: Any = None) -> Any:
    cursor: Any = settings
    for part in _path_parts(path):
        if not isinstance(cursor, dict) or part not in cursor:
            return default
        cursor = cursor.get(part)
    return cursor


def set_runtime_setting(settings: dict[str, Any], path: str, value: Any) -> None:
    parts = _path_parts(path)
    if not parts:
        return
    cursor: dict[str, Any] = settings
    for part in parts[:-1]:
        next_value = cursor.get(part)
        if not isinstance(next_value, dict):
            next_value = {}
            cursor[part] = next_value
        cursor = next_value
    cursor[parts[-1]] = value


def load_dotenv_file(path: str | Path = ".env", override: bool = False) -> dict[str, str]:
    dotenv_path = Path(path)
    loaded: dict[str, str] = {}
    if not dotenv_path.exists():
        return loaded

    for raw_line in dotenv_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue

        if line.startswith("export "):
            line = line[len("export ") :].strip()

        if "=" not in line:
            continue

        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip()
        if not key:
            continue

        if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
            value = value[1:-1]

        loaded[key] = value
        if override or key not in os.environ:
            os.environ[key] = value

    return loaded


def build_runtime_settings(
    config_data: dict[str, Any] | None = None,
    env_data: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    settings = copy.deepcopy(DEFAULT_RUNTIME_SETTINGS)
    if isinstance(config_data, dict):
        runtime_config = config_data.get("runtime")
        if isinstance(runtime_config, dict):
            _deep_merge(settings, copy.deepcopy(runtime_config))

    env_values = env_data if env_data is not None else os.environ
    for path, (env_keys, value_type) in ENV_OVERRIDES.items():
        raw_value = None
        matched_key = None
        for env_key in env_keys:
            raw_candidate = env_values.get(env_key)
            if raw_candidate is None or str(raw_candidate).strip() == "":
                continue
            raw_value = raw_candidate
            matched_key = env_key
            break
        if raw_value is None or str(raw_value).strip() == "":
            continue
        try:
            parsed = _coerce_env_value(str(raw_value).strip(), value_type)
        except (TypeError, ValueError) as error:
            logger.warning(f"Ignoring invalid value for {matched_key}: {error}")
            continue
        set_runtime_setting(settings, path, parsed)

    return settings


__all__ = [
    "DEFAULT_RUNTIME_SETTINGS",
    "ENV_OVERRIDES",
    "build_runtime_settings",
    "get_runtime_setting",
    "load_dotenv_file",
    "set_runtime_setting",
]
