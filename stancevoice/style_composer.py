##########################################################################
#                                                                        #
#  This file (style_composer.py) blends learned bucket content with the  #
#  base style under a retention floor and boosts reinforced vocabulary.  #
#                                                                        #
##########################################################################

from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Any

from stancevoice.bucket_store import StanceBucket
from stancevoice.style_lexicon import (
    POS_KEYS,
    default_lexicon,
    default_templates,
    empty_lexicon,
    normalize_lexicon,
    unique_strings,
)


DEFAULT_TEMPLATE_RETENTION = 0.5
DEFAULT_LEXICON_RETENTION = 0.5


@dataclass
class GenerationConfig:
    stance: str
    templates: list[str]
    lexicon: dict[str, list[str]]

    def to_dict(self) -> dict[str, Any]:
        return {
            "stance": self.stance,
            "templates": list(self.templates),
            "lexicon": {key: list(values) for key, values in self.lexicon.items()},
        }


@dataclass
class LearnedContent:
    templates: list[str]
    lexicon: dict[str, list[str]]


def clamp_retention(value: Any, fallback: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or math.isnan(value):
        return fallback
    return max(0.0, min(1.0, float(value)))


def retained_count(length: int, retention: float) -> int:
    return max(1, math.floor(length * retention))


def trim_to_retention(values: list[str], retention: float) -> list[str]:
    if not values or retention >= 1:
        return list(values)
    return list(values[: retained_count(len(values), retention)])


def merge_with_retention(learned: list[str], base: list[str], retention: float) -> list[str]:
    """Learned entries first, then the retained head of ``base``, first-seen order."""
    if not learned:
        return list(base)
    output: list[str] = []
    seen: set[str] = set()
    for value in list(learned) + trim_to_retention(base, retention):
        if value in seen:
            continue
        seen.add(value)
        output.append(value)
    return output


def isolate_learned(bucket: StanceBucket, base_templates: list[str], base_lexicon: dict[str, Any]) -> LearnedContent:
    base_template_set = set(base_templates)
    base = normalize_lexicon(base_lexicon)
    lexicon = empty_lexicon()
    for key in POS_KEYS:
        base_set = set(base[key])
        lexicon[key] = [token for token in bucket.lexicon.get(key, []) if token not in base_set]
    return LearnedContent(
        templates=[template for template in bucket.templates if template not in base_template_set],
        lexicon=lexicon,
    )


def boost_learned(lexicon: dict[str, list[str]], learned: dict[str, list[str]]) -> dict[str, list[str]]:
    """Emit an adjacent second copy of every reinforced token."""
    boosted = empty_lexicon()
    for key in POS_KEYS:
        learned_set = set(learned.get(key, []))
        output: list[str] = []
        for token in lexicon.get(key, []):
            output.append(token)
            if token in learned_set:
                output.append(token)
        boosted[key] = output
    return boosted


class StyleComposer:
    def __init__(
        self,
        template_retention: Any = DEFAULT_TEMPLATE_RETENTION,
        lexicon_retention: Any = DEFAULT_LEXICON_RETENTION,
    ):
        self.template_retention = clamp_retention(template_retention, DEFAULT_TEMPLATE_RETENTION)
        self.lexicon_retention = clamp_retention(lexicon_retention, DEFAULT_LEXICON_RETENTION)

    def compose(
        self,
        *,
        stance: str,
        bucket: StanceBucket | None,
        base_templates: list[str],
        base_lexicon: dict[str, Any],
        fallback: dict[str, Any] | None = None,
    ) -> GenerationConfig:
        """Compose a generation config for one stance band.

        Learned content is whatever the bucket holds beyond the base style.
        It is merged onto the caller fallback when one is supplied, otherwise
        onto the base, keeping at least one entry of that target per list.
        """
        target_templates, target_lexicon = self._composition_target(base_templates, base_lexicon, fallback)
        if bucket is None:
            return GenerationConfig(stance=stance, templates=target_templates, lexicon=target_lexicon)

        learned = isolate_learned(bucket, unique_strings(base_templates), base_lexicon)
        templates = merge_with_retention(learned.templates, target_templates, self.template_retention)
        lexicon = {
            key: merge_with_retention(learned.lexicon[key], target_lexicon[key], self.lexicon_retention)
            for key in POS_KEYS
        }
        return GenerationConfig(
            stance=stance,
            templates=templates,
            lexicon=boost_learned(lexicon, learned.lexicon),
        )

    @staticmethod
    def _composition_target(
        base_templates: list[str],
        base_lexicon: dict[str, Any],
        fallback: dict[str, Any] | None,
    ) -> tuple[list[str], dict[str, list[str]]]:
        payload = fallback if isinstance(fallback, dict) else {}
        fallback_templates = unique_strings(payload.get("templates"))
        templates = fallback_templates or unique_strings(base_templates) or default_templates()
        if isinstance(payload.get("lexicon"), dict):
            lexicon = normalize_lexicon(payload.get("lexicon"))
        elif isinstance(base_lexicon, dict) and base_lexicon:
            lexicon = normalize_lexicon(base_lexicon)
        else:
            lexicon = default_lexicon()
        return templates, lexicon


__all__ = [
    "DEFAULT_LEXICON_RETENTION",
    "DEFAULT_TEMPLATE_RETENTION",
    "GenerationConfig",
    "LearnedContent",
    "StyleComposer",
    "boost_learned",
    "clamp_retention",
    "isolate_learned",
    "merge_with_retention",
    "retained_count",
    "trim_to_retention",
]
