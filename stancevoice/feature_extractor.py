##########################################################################
#                                                                        #
#  This file (feature_extractor.py) turns an utterance into a syntactic  #
#  template plus a part-of-speech lexicon, using a pluggable tagger      #
#  with a deterministic heuristic fallback.                              #
#                                                                        #
##########################################################################

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from stancevoice.style_lexicon import (
    ARTICLES,
    AUXILIARIES,
    CONJUNCTIONS,
    MODALS,
    PREPOSITIONS,
    PRONOUNS,
    append_unique,
    empty_lexicon,
    strip_punctuation,
)


logger = logging.getLogger(__name__)


class TaggedToken(BaseModel):
    """One record returned by a part-of-speech tagger."""

    model_config = ConfigDict(extra="ignore")

    token: str
    pos: str | None = None
    verbForm: str | None = None
    lemma: str | None = None


class TaggerResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    tokens: list[TaggedToken] = []


# pos label -> (lexicon category, template slot)
_POS_ROUTES: dict[str, tuple[str, str]] = {
    "noun": ("nouns", "{noun}"),
    "adjective": ("adjectives", "{adjective}"),
    "adverb": ("adverbs", "{adverb}"),
    "conjunction": ("conjunctions", "{conjunction}"),
    "pronoun": ("pronouns", "{pronoun}"),
    "article": ("articles", "{article}"),
    "det": ("articles", "{article}"),
    "determiner": ("articles", "{article}"),
    "preposition": ("prepositions", "{preposition}"),
    "prep": ("prepositions", "{preposition}"),
    "auxiliary": ("auxiliaries", "{aux}"),
    "aux": ("auxiliaries", "{aux}"),
    "modal": ("modals", "{modal}"),
    "modal_verb": ("modals", "{modal}"),
}

_VERB_FORM_SLOTS = {
    "past": "{verbPast}",
    "part": "{verbPart}",
    "gerund": "{verbGerund}",
    "s3": "{verb3rd}",
}


@dataclass
class Extraction:
    template: str
    lexicon: dict[str, list[str]]
    source: str = "heuristic"

    def to_dict(self) -> dict[str, Any]:
        return {
            "template": self.template,
            "lexicon": {key: list(values) for key, values in self.lexicon.items()},
        }


@dataclass
class TagAttempt:
    tokens: list[TaggedToken] = field(default_factory=list)
    error: str | None = None

    @property
    def usable(self) -> bool:
        return self.error is None and bool(self.tokens)


def validate_tag_records(records: Any) -> list[TaggedToken]:
    """Keep the tagger records that validate, in order."""
    if not isinstance(records, (list, tuple)):
        return []
    output: list[TaggedToken] = []
    for record in records:
        if isinstance(record, TaggedToken):
            output.append(record)
            continue
        try:
            output.append(TaggedToken.model_validate(record))
        except ValidationError:
            continue
    return output


def _heuristic_category(lower: str) -> tuple[str, str]:
    # Closed classes first; suffix rules only apply once none of them match.
    if lower in CONJUNCTIONS:
        return "conjunctions", "{conjunction}"
    if lower in PRONOUNS:
        return "pronouns", "{pronoun}"
    if lower in ARTICLES:
        return "articles", "{article}"
    if lower in PREPOSITIONS:
        return "prepositions", "{preposition}"
    if lower in AUXILIARIES:
        return "auxiliaries", "{aux}"
    if lower in MODALS:
        return "modals", "{modal}"
    if lower.endswith("ly"):
        return "adverbs", "{adverb}"
    if lower.endswith(("ive", "ous", "ful")):
        return "adjectives", "{adjective}"
    if lower.endswith(("ing", "ed")):
        return "verbs", "{verb}"
    return "nouns", "{noun}"


class FeatureExtractor:
    """Extracts ``(template, lexicon)`` pairs from raw utterances.

    ``tagger`` is any object exposing ``async tag(text)`` that returns a
    sequence of ``{token, pos, verbForm?, lemma?}`` records. Without a tagger,
    or when tagging yields nothing usable, the heuristic path is used for that
    call.
    """

    def __init__(self, tagger: Any = None):
        self._tagger = tagger

    async def extract(self, text: str) -> Extraction:
        attempt = await self._attempt_tagging(text)
        if attempt.error is not None:
            logger.warning(f"Part-of-speech tagging failed, using heuristic extraction: {attempt.error}")
        if not attempt.usable:
            return self.extract_heuristic(text)
        return self.extract_from_tags(attempt.tokens)

    async def _attempt_tagging(self, text: str) -> TagAttempt:
        if self._tagger is None:
            return TagAttempt()
        try:
            records = await self._tagger.tag(text)
        except Exception as error:  # noqa: BLE001
            return TagAttempt(error=str(error) or error.__class__.__name__)
        return TagAttempt(tokens=validate_tag_records(records))

    def extract_from_tags(self, tokens: list[TaggedToken]) -> Extraction:
        lexicon = empty_lexicon()
        parts: list[str] = []
        for record in tokens:
            token = record.token
            if not token:
                continue
            bare = strip_punctuation(token)
            if not bare:
                parts.append(token)
                continue
            pos = (record.pos or "").strip().lower()
            if pos == "verb":
                lemma = record.lemma if isinstance(record.lemma, str) and record.lemma else bare
                append_unique(lexicon["verbs"], [lemma])
                verb_form = (record.verbForm or "").strip().lower()
                parts.append(_VERB_FORM_SLOTS.get(verb_form, "{verb}"))
                continue
            route = _POS_ROUTES.get(pos)
            if route is None:
                parts.append(token)
                continue
            category, slot = route
            append_unique(lexicon[category], [bare])
            parts.append(slot)
        return Extraction(template=" ".join(parts), lexicon=lexicon, source="tagger")

    def extract_heuristic(self, text: str) -> Extraction:
        lexicon = empty_lexicon()
        parts: list[str] = []
        for token in str(text or "").split():
            bare = strip_punctuation(token)
            if not bare:
                parts.append(token)
                continue
            category, slot = _heuristic_category(bare.lower())
            append_unique(lexicon[category], [bare])
            parts.append(slot)
        return Extraction(template=" ".join(parts), lexicon=lexicon, source="heuristic")


__all__ = [
    "Extraction",
    "FeatureExtractor",
    "TagAttempt",
    "TaggedToken",
    "TaggerResponse",
    "validate_tag_records",
]
