##########################################################################
#                                                                        #
#  Base style (taste config) and persona override merging                #
#                                                                        #
##########################################################################

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from stancevoice.style_lexicon import (
    POS_KEYS,
    append_unique,
    default_lexicon,
    default_templates,
    empty_lexicon,
    normalize_lexicon,
    unique_strings,
)


def _coerce_dict(value: Any) -> dict[str, Any]:
    return dict(value) if isinstance(value, dict) else {}


@dataclass
class TasteConfig:
    """User-authored base style. Learning never mutates it."""

    templates: list[str] = field(default_factory=list)
    lexicon: dict[str, list[str]] = field(default_factory=empty_lexicon)
    # Whether the lexicon was authored at all; an empty one defers to the built-in defaults.
    has_lexicon: bool = False

    @classmethod
    def from_payload(cls, payload: Any) -> "TasteConfig":
        data = _coerce_dict(payload)
        raw_lexicon = data.get("lexicon")
        return cls(
            templates=unique_strings(data.get("templates")),
            lexicon=normalize_lexicon(raw_lexicon),
            has_lexicon=isinstance(raw_lexicon, dict) and bool(raw_lexicon),
        )

    def base_templates(self) -> list[str]:
        return list(self.templates) if self.templates else default_templates()

    def base_lexicon(self) -> dict[str, list[str]]:
        if not self.has_lexicon:
            return default_lexicon()
        return {key: list(self.lexicon[key]) for key in POS_KEYS}


def _lexicon_sources(lexicon_override: dict[str, Any]) -> list[dict[str, Any]]:
    looks_flat = any(isinstance(lexicon_override.get(key), list) for key in POS_KEYS)
    if looks_flat:
        return [lexicon_override]
    return [source for source in lexicon_override.values() if isinstance(source, dict)]


def merge_lexicon_override(base_lexicon: dict[str, Any], lexicon_override: Any) -> dict[str, list[str]]:
    """Union override sources into the base lexicon, base order first."""
    merged = normalize_lexicon(base_lexicon)
    if not isinstance(lexicon_override, dict):
        return merged
    for source in _lexicon_sources(lexicon_override):
        for key in POS_KEYS:
            tokens = source.get(key)
            if not isinstance(tokens, list):
                continue
            append_unique(merged[key], [token for token in tokens if isinstance(token, str)])
    return merged


def _collect_persona_templates(persona_syntax: Any, collected: list[str]) -> None:
    if not isinstance(persona_syntax, dict):
        return
    for side in ("self", "otherSpeaker"):
        templates = persona_syntax.get(side)
        if isinstance(templates, list):
            append_unique(collected, [template for template in templates if isinstance(template, str)])


def merge_syntax_override(base_templates: list[str], syntax_override: Any) -> list[str]:
    """Persona templates first, then the previous base templates not already present."""
    merged = list(base_templates)
    if not isinstance(syntax_override, dict):
        return merged
    collected: list[str] = []
    if syntax_override.get("self") or syntax_override.get("otherSpeaker"):
        _collect_persona_templates(syntax_override, collected)
    else:
        for persona_syntax in syntax_override.values():
            _collect_persona_templates(persona_syntax, collected)
    if not collected:
        return merged
    append_unique(collected, merged)
    return collected


class TasteConfigMerger:
    """Folds persona overrides into a taste config without losing base content."""

    def merge(self, taste: TasteConfig, lexicon: Any = None, syntax: Any = None) -> TasteConfig:
        merged_lexicon = merge_lexicon_override(taste.base_lexicon(), lexicon)
        merged_templates = merge_syntax_override(taste.base_templates(), syntax)
        return TasteConfig(
            templates=merged_templates,
            lexicon=merged_lexicon,
            has_lexicon=True,
        )


__all__ = [
    "TasteConfig",
    "TasteConfigMerger",
    "merge_lexicon_override",
    "merge_syntax_override",
]
