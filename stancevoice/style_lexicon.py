##########################################################################
#                                                                        #
#  Lexicon and template primitives shared by the voice style engine      #
#                                                                        #
##########################################################################

from __future__ import annotations

from typing import Any, Iterable


POS_KEYS: tuple[str, ...] = (
    "nouns",
    "verbs",
    "adjectives",
    "adverbs",
    "conjunctions",
    "pronouns",
    "articles",
    "prepositions",
    "auxiliaries",
    "modals",
)

STANCE_BANDS: tuple[str, ...] = ("defensive", "neutral", "supportive")

TEMPLATE_SLOTS: tuple[str, ...] = (
    "{noun}",
    "{verb}",
    "{verbPast}",
    "{verbPart}",
    "{verbGerund}",
    "{verb3rd}",
    "{adjective}",
    "{adverb}",
    "{conjunction}",
    "{pronoun}",
    "{article}",
    "{preposition}",
    "{aux}",
    "{modal}",
)

DEFAULT_TEMPLATES: tuple[str, ...] = (
    "My {noun} is {adjective}",
    "This {noun} {verb}",
    "Through {adjective} {noun} I {verb}",
)

DEFAULT_LEXICON: dict[str, tuple[str, ...]] = {
    "adjectives": ("present", "emerging", "current"),
    "nouns": ("form", "awareness", "presence"),
    "verbs": ("being", "becoming", "emerging"),
    "adverbs": ("now", "fully", "deeply"),
    "conjunctions": ("and", "while", "as"),
}

# Closed word classes for the heuristic tagger, compared lowercased.
CONJUNCTIONS = frozenset({"and", "or", "but", "yet", "so", "because", "although"})
PRONOUNS = frozenset({"i", "you", "we"})
ARTICLES = frozenset({"a", "an", "the"})
PREPOSITIONS = frozenset({"in", "on", "at", "with", "about", "into", "through", "over", "between"})
AUXILIARIES = frozenset({"am", "is", "are", "was", "were", "be", "been", "being", "have"})
MODALS = frozenset({"can", "could", "may", "might", "must", "shall", "should", "will", "would"})

ENCLOSING_PUNCTUATION = '.,!?;:()"'


def _coerce_dict(value: Any) -> dict[str, Any]:
    return dict(value) if isinstance(value, dict) else {}


def strip_punctuation(token: str) -> str:
    return str(token or "").strip(ENCLOSING_PUNCTUATION)


def unique_strings(values: Any) -> list[str]:
    """Ordered, de-duplicated list of the non-empty strings in ``values``."""
    if not isinstance(values, (list, tuple)):
        return []
    output: list[str] = []
    seen: set[str] = set()
    for value in values:
        if not isinstance(value, str) or not value or value in seen:
            continue
        seen.add(value)
        output.append(value)
    return output


def empty_lexicon() -> dict[str, list[str]]:
    return {key: [] for key in POS_KEYS}


def normalize_lexicon(lexicon: Any) -> dict[str, list[str]]:
    """Return a fresh lexicon with all ten categories present.

    Unknown keys are dropped and every category list is copied, so the
    result never aliases the caller's lists.
    """
    source = _coerce_dict(lexicon)
    return {key: unique_strings(source.get(key)) for key in POS_KEYS}


def default_lexicon() -> dict[str, list[str]]:
    return normalize_lexicon({key: list(values) for key, values in DEFAULT_LEXICON.items()})


def default_templates() -> list[str]:
    return list(DEFAULT_TEMPLATES)


def append_unique(target: list[str], values: Iterable[str]) -> int:
    """Append values missing from ``target`` in order. Returns the number added."""
    added = 0
    for value in values:
        if not value or value in target:
            continue
        target.append(value)
        added += 1
    return added


def is_stance_band(value: Any) -> bool:
    return isinstance(value, str) and value in STANCE_BANDS


__all__ = [
    "ARTICLES",
    "AUXILIARIES",
    "CONJUNCTIONS",
    "DEFAULT_LEXICON",
    "DEFAULT_TEMPLATES",
    "MODALS",
    "POS_KEYS",
    "PREPOSITIONS",
    "PRONOUNS",
    "STANCE_BANDS",
    "TEMPLATE_SLOTS",
    "append_unique",
    "default_lexicon",
    "default_templates",
    "empty_lexicon",
    "is_stance_band",
    "normalize_lexicon",
    "strip_punctuation",
    "unique_strings",
]
