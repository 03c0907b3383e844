##########################################################################
#                                                                        #
#  Per-stance accumulators of learned templates and lexicon              #
#                                                                        #
##########################################################################

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import threading
from typing import Any

from stancevoice.feature_extractor import Extraction
from stancevoice.style_lexicon import (
    POS_KEYS,
    STANCE_BANDS,
    append_unique,
    empty_lexicon,
    normalize_lexicon,
    unique_strings,
)


logger = logging.getLogger(__name__)


@dataclass
class StanceBucket:
    templates: list[str] = field(default_factory=list)
    lexicon: dict[str, list[str]] = field(default_factory=empty_lexicon)

    @classmethod
    def from_payload(cls, payload: Any) -> "StanceBucket":
        data = payload if isinstance(payload, dict) else {}
        return cls(
            templates=unique_strings(data.get("templates")),
            lexicon=normalize_lexicon(data.get("lexicon")),
        )

    def copy(self) -> "StanceBucket":
        return StanceBucket(
            templates=list(self.templates),
            lexicon={key: list(self.lexicon.get(key, [])) for key in POS_KEYS},
        )

    def to_dict(self) -> dict[str, Any]:
        copied = self.copy()
        return {"templates": copied.templates, "lexicon": copied.lexicon}


class BucketStore:
    """Owns the defensive / neutral / supportive buckets of one merger.

    All mutation happens under a per-store lock so the no-duplicates
    invariant holds even when observers run on several threads. Reads hand
    back copies of whatever was committed at call time.
    """

    def __init__(self, templates: list[str] | None = None, lexicon: dict[str, Any] | None = None):
        self._lock = threading.RLock()
        self._buckets: dict[str, StanceBucket] = {}
        self.seed(templates or [], lexicon or {})

    def seed(self, templates: list[str], lexicon: dict[str, Any]) -> None:
        seed_templates = unique_strings(templates)
        seed_lexicon = normalize_lexicon(lexicon)
        with self._lock:
            self._buckets = {
                band: StanceBucket(
                    templates=list(seed_templates),
                    lexicon={key: list(seed_lexicon[key]) for key in POS_KEYS},
                )
                for band in STANCE_BANDS
            }

    def resolve_band(self, stance: Any) -> str:
        return stance if isinstance(stance, str) and stance in self._buckets else "neutral"

    def store(self, stance: Any, extraction: Extraction | dict[str, Any]) -> dict[str, int]:
        """Append the extraction's template and tokens that the bucket lacks.

        Returns how many templates and lexicon tokens were added.
        """
        if isinstance(extraction, Extraction):
            template = extraction.template
            lexicon = extraction.lexicon
        else:
            payload = extraction if isinstance(extraction, dict) else {}
            template = payload.get("template")
            lexicon = payload.get("lexicon")
        incoming = lexicon if isinstance(lexicon, dict) else {}

        with self._lock:
            band = self.resolve_band(stance)
            bucket = self._buckets[band]
            added_templates = 0
            if isinstance(template, str) and template:
                added_templates = append_unique(bucket.templates, [template])
            added_tokens = 0
            for key in POS_KEYS:
                tokens = incoming.get(key)
                if not isinstance(tokens, (list, tuple)):
                    continue
                added_tokens += append_unique(
                    bucket.lexicon[key],
                    [token for token in tokens if isinstance(token, str)],
                )
        logger.debug(f"Stored extraction in {band} bucket: +{added_templates} templates, +{added_tokens} tokens")
        return {"templates": added_templates, "tokens": added_tokens}

    def snapshot(self, stance: Any) -> StanceBucket | None:
        with self._lock:
            bucket = self._buckets.get(stance) if isinstance(stance, str) else None
            return bucket.copy() if bucket is not None else None

    def replace(self, buckets: Any) -> None:
        """Swap in all three buckets from an exported payload."""
        payload = buckets if isinstance(buckets, dict) else {}
        replacement = {band: StanceBucket.from_payload(payload.get(band)) for band in STANCE_BANDS}
        with self._lock:
            self._buckets = replacement

    def export(self) -> dict[str, dict[str, Any]]:
        with self._lock:
            return {band: self._buckets[band].to_dict() for band in STANCE_BANDS}

    def is_mature(self, stance: Any, min_templates: int, min_lexicon: int) -> bool:
        bucket = self.snapshot(stance)
        if bucket is None:
            return False
        if len(bucket.templates) < min_templates:
            return False
        return all(len(bucket.lexicon[key]) >= min_lexicon for key in POS_KEYS)


__all__ = ["BucketStore", "StanceBucket"]
