##########################################################################
#                                                                        #
#  Stance label normalization into the three routing bands               #
#                                                                        #
##########################################################################

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any

from stancevoice.style_lexicon import STANCE_BANDS


logger = logging.getLogger(__name__)

_STANCE_ALIASES = {
    "hostile": "defensive",
    "aggressive": "defensive",
    "kind": "supportive",
    "reassuring": "supportive",
    "encouraging": "supportive",
}


def normalize_stance(label: Any) -> str:
    """Map a raw classifier label onto ``defensive``, ``neutral`` or ``supportive``.

    Anything unrecognised, including a missing label from a failed
    classification, lands in ``neutral``.
    """
    cleaned = str(label if label is not None else "").strip().lower()
    if cleaned in STANCE_BANDS:
        return cleaned
    return _STANCE_ALIASES.get(cleaned, "neutral")


@dataclass
class StanceAttempt:
    raw_label: str | None
    band: str
    error: str | None = None


async def classify_stance(classifier: Any, text: str) -> StanceAttempt:
    """Run the classifier once and normalize whatever came back."""
    if classifier is None:
        return StanceAttempt(raw_label=None, band="neutral")
    try:
        raw_label = await classifier.classify(text)
    except Exception as error:  # noqa: BLE001
        logger.warning(f"Stance classification failed, defaulting to neutral: {error}")
        return StanceAttempt(raw_label=None, band="neutral", error=str(error) or error.__class__.__name__)
    label = raw_label if isinstance(raw_label, str) else None
    return StanceAttempt(raw_label=label, band=normalize_stance(label))


__all__ = ["StanceAttempt", "classify_stance", "normalize_stance"]
