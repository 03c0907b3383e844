##########################################################################
#                                                                        #
#  This file (relational_bridge.py) couples observed stance to an        #
#  external relational-state model and reads the current stance band     #
#  back out of it.                                                       #
#                                                                        #
##########################################################################

from __future__ import annotations

import logging
import math
from typing import Any


logger = logging.getLogger(__name__)


RELATIONAL_SCORE_OFFSET = 0.5
RELATIONAL_SCORE_SCALE = 0.5
RELATIONAL_AXES = ("trust", "comfort", "alignment", "energy")

SUPPORTIVE_RELATIONAL_DELTA = {"trust": 0.05, "comfort": 0.05, "alignment": 0.03, "energy": 0.02}
DEFENSIVE_RELATIONAL_DELTA = {"trust": -0.05, "comfort": -0.06, "alignment": -0.04, "energy": -0.03}
NEUTRAL_RELATIONAL_DELTA = {"trust": 0.01, "comfort": 0.01, "alignment": 0.0, "energy": 0.0}

_RELATIONAL_STANCE_BANDS = {
    "defensive": "defensive",
    "cautious": "neutral",
    "collaborative": "supportive",
    "intimate": "supportive",
}


def stance_to_delta(stance: Any) -> dict[str, float]:
    if stance == "supportive":
        return dict(SUPPORTIVE_RELATIONAL_DELTA)
    if stance == "defensive":
        return dict(DEFENSIVE_RELATIONAL_DELTA)
    return dict(NEUTRAL_RELATIONAL_DELTA)


def scale_delta(delta: dict[str, Any], score: Any = None) -> dict[str, float]:
    """Scale every axis by ``0.5 + 0.5 * score`` when ``score`` is a finite number."""
    factor = 1.0
    if isinstance(score, (int, float)) and not isinstance(score, bool) and math.isfinite(score):
        clamped = max(0.0, min(1.0, float(score)))
        factor = RELATIONAL_SCORE_OFFSET + RELATIONAL_SCORE_SCALE * clamped
    return {axis: float(delta.get(axis) or 0.0) * factor for axis in RELATIONAL_AXES}


def map_relational_stance(relational_stance: Any) -> str:
    cleaned = str(relational_stance if relational_stance is not None else "").strip().lower()
    return _RELATIONAL_STANCE_BANDS.get(cleaned, "neutral")


def _read_field(container: Any, name: str) -> Any:
    if isinstance(container, dict):
        return container.get(name)
    return getattr(container, name, None)


class RelationalBridge:
    """Narrow adapter over an external relational model.

    The collaborator exposes ``get_interaction(agent_id, other_id)`` and
    ``update_interaction_state(from_id, to_id, delta)``. Both may raise; the
    bridge logs and carries on, since relational coupling is best effort.
    """

    def __init__(self, relational: Any = None):
        self._relational = relational

    @property
    def configured(self) -> bool:
        return self._relational is not None

    def apply(self, direction: str, speaker_id: Any, target_id: Any, delta: dict[str, float]) -> bool:
        update = getattr(self._relational, "update_interaction_state", None)
        if not callable(update):
            if self.configured:
                logger.warning(
                    f"Relational collaborator {type(self._relational).__name__} has no update_interaction_state, skipping nudge."
                )
            return False
        # Incoming utterances move the receiver's view of the speaker.
        if direction == "incoming":
            from_id, to_id = target_id, speaker_id
        else:
            from_id, to_id = speaker_id, target_id
        try:
            update(from_id, to_id, delta)
        except Exception as error:  # noqa: BLE001
            logger.warning(f"Relational update {from_id}->{to_id} failed: {error}")
            return False
        return True

    def nudge(
        self,
        *,
        speaker_id: Any,
        target_id: Any,
        stance: str,
        direction: str = "incoming",
        context: dict[str, Any] | None = None,
    ) -> bool:
        if not self.configured or not speaker_id or not target_id:
            return False
        payload = context if isinstance(context, dict) else {}
        delta = scale_delta(stance_to_delta(stance), payload.get("score"))
        return self.apply(direction, speaker_id, target_id, delta)

    def infer_band(self, agent_id: Any, target_id: Any) -> str:
        if not self.configured or not agent_id or not target_id:
            return "neutral"
        try:
            interaction = self._relational.get_interaction(agent_id, target_id)
            state = _read_field(interaction, "state")
            stance = _read_field(state, "stance") or "cautious"
        except Exception as error:  # noqa: BLE001
            logger.warning(f"Relational stance lookup {agent_id}->{target_id} failed: {error}")
            return "neutral"
        return map_relational_stance(stance)


__all__ = [
    "DEFENSIVE_RELATIONAL_DELTA",
    "NEUTRAL_RELATIONAL_DELTA",
    "RELATIONAL_AXES",
    "RelationalBridge",
    "SUPPORTIVE_RELATIONAL_DELTA",
    "map_relational_stance",
    "scale_delta",
    "stance_to_delta",
]
