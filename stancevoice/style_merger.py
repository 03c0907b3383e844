##########################################################################
#                                                                        #
#  Stance-bucketed voice learning and generation style merger            #
#                                                                        #
##########################################################################

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Any, Callable

from stancevoice.bucket_store import BucketStore
from stancevoice.feature_extractor import FeatureExtractor
from stancevoice.llm_collaborators import collaborators_from_settings
from stancevoice.model_router import ModelEndpoint
from stancevoice.relational_bridge import RelationalBridge
from stancevoice.runtime_settings import build_runtime_settings, load_dotenv_file
from stancevoice.stance_normalizer import classify_stance
from stancevoice.style_composer import (
    DEFAULT_LEXICON_RETENTION,
    DEFAULT_TEMPLATE_RETENTION,
    GenerationConfig,
    StyleComposer,
    clamp_retention,
    isolate_learned,
)
from stancevoice.style_lexicon import POS_KEYS, STANCE_BANDS
from stancevoice.taste_config import TasteConfig, TasteConfigMerger


logger = logging.getLogger(__name__)

DEFAULT_MIN_TEMPLATES_PER_STANCE = 4
DEFAULT_MIN_LEXICON_PER_POS = 6
DEBUG_TEMPLATE_SAMPLE_SIZE = 10
DEBUG_LEXICON_SAMPLE_SIZE = 10


def _as_int(value: Any, fallback: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return int(fallback)


def _as_float(value: Any, fallback: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return float(fallback)


def _positive_int(value: Any, fallback: int) -> int:
    parsed = _as_int(value, fallback)
    return parsed if parsed > 0 else fallback


@dataclass
class MergerRuntimeConfig:
    min_templates_per_stance: int = DEFAULT_MIN_TEMPLATES_PER_STANCE
    min_lexicon_per_pos: int = DEFAULT_MIN_LEXICON_PER_POS
    base_template_retention: float = DEFAULT_TEMPLATE_RETENTION
    base_lexicon_retention: float = DEFAULT_LEXICON_RETENTION

    @classmethod
    def from_runtime(cls, runtime_payload: dict[str, Any] | None = None) -> "MergerRuntimeConfig":
        payload = runtime_payload if isinstance(runtime_payload, dict) else {}
        return cls(
            min_templates_per_stance=_positive_int(
                payload.get("min_templates_per_stance"), DEFAULT_MIN_TEMPLATES_PER_STANCE
            ),
            min_lexicon_per_pos=_positive_int(payload.get("min_lexicon_per_pos"), DEFAULT_MIN_LEXICON_PER_POS),
            base_template_retention=clamp_retention(
                _as_float(payload.get("base_template_retention"), DEFAULT_TEMPLATE_RETENTION),
                DEFAULT_TEMPLATE_RETENTION,
            ),
            base_lexicon_retention=clamp_retention(
                _as_float(payload.get("base_lexicon_retention"), DEFAULT_LEXICON_RETENTION),
                DEFAULT_LEXICON_RETENTION,
            ),
        )


class StyleMerger:
    """Per-relationship voice session.

    Observes utterances into defensive / neutral / supportive buckets and
    composes generation styles from them. ``classifier`` exposes
    ``async classify(text)``, ``tagger`` exposes ``async tag(text)`` and
    ``relational`` is the external relational-state model; all three are
    optional and fail open.
    """

    def __init__(
        self,
        taste_config: dict[str, Any] | None = None,
        relational: Any = None,
        *,
        classifier: Any = None,
        tagger: Any = None,
        runtime_config: MergerRuntimeConfig | None = None,
    ):
        self._config = runtime_config or MergerRuntimeConfig()
        self._taste = TasteConfig.from_payload(taste_config)
        self._classifier = classifier
        self._extractor = FeatureExtractor(tagger)
        self._bridge = RelationalBridge(relational)
        self._composer = StyleComposer(
            template_retention=self._config.base_template_retention,
            lexicon_retention=self._config.base_lexicon_retention,
        )
        self._taste_merger = TasteConfigMerger()
        self._buckets = BucketStore(self._taste.base_templates(), self._taste.base_lexicon())

    @classmethod
    def from_settings(
        cls,
        taste_config: dict[str, Any] | None = None,
        relational: Any = None,
        *,
        settings: dict[str, Any] | None = None,
        selector: Callable[[list[ModelEndpoint]], ModelEndpoint] | None = None,
        dotenv_path: str | Path | None = ".env",
    ) -> "StyleMerger":
        """Build a merger with model-backed collaborators from runtime settings.

        Without explicit ``settings``, values from ``dotenv_path`` are loaded
        into the environment (existing variables win) before the settings are
        read from it.
        """
        if isinstance(settings, dict):
            runtime = settings
        else:
            if dotenv_path:
                load_dotenv_file(dotenv_path)
            runtime = build_runtime_settings()
        classifier, tagger = collaborators_from_settings(runtime, selector=selector)
        return cls(
            taste_config,
            relational,
            classifier=classifier,
            tagger=tagger,
            runtime_config=MergerRuntimeConfig.from_runtime(runtime.get("merger")),
        )

    @property
    def runtime_config(self) -> MergerRuntimeConfig:
        return self._config

    @property
    def taste_config(self) -> dict[str, Any]:
        return {
            "templates": self._taste.base_templates(),
            "lexicon": self._taste.base_lexicon(),
        }

    async def observe_utterance(
        self,
        text: str,
        speaker_id: Any = None,
        target_id: Any = None,
        direction: str = "incoming",
        context: dict[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        if not isinstance(text, str) or not text.strip():
            return None
        attempt = await classify_stance(self._classifier, text)
        extraction = await self._extractor.extract(text)
        self._buckets.store(attempt.band, extraction)
        self._bridge.nudge(
            speaker_id=speaker_id,
            target_id=target_id,
            stance=attempt.band,
            direction=direction,
            context=context,
        )
        logger.debug(
            f"Observed {extraction.source} extraction under {attempt.band} "
            f"(classifier label {attempt.raw_label!r}): {extraction.template!r}"
        )
        return {"stance": attempt.band, **extraction.to_dict()}

    def get_generation_config(
        self,
        agent_id: Any = None,
        target_id: Any = None,
        fallback: dict[str, Any] | None = None,
    ) -> GenerationConfig:
        band = self._bridge.infer_band(agent_id, target_id)
        bucket = self._buckets.snapshot(band) or self._buckets.snapshot("neutral")
        return self._composer.compose(
            stance=band,
            bucket=bucket,
            base_templates=self._taste.base_templates(),
            base_lexicon=self._taste.base_lexicon(),
            fallback=fallback,
        )

    def apply_overrides(self, lexicon: Any = None, syntax: Any = None) -> bool:
        """Fold persona overrides into the base style and re-seed every bucket.

        Accumulated per-stance learning is discarded.
        """
        if not lexicon and not syntax:
            return False
        self._taste = self._taste_merger.merge(self._taste, lexicon=lexicon, syntax=syntax)
        self._buckets.seed(self._taste.base_templates(), self._taste.base_lexicon())
        logger.info(
            f"Applied style overrides: {len(self._taste.templates)} base templates, buckets re-seeded."
        )
        return True

    def apply_persona(self, persona: Any) -> bool:
        if not isinstance(persona, dict):
            return False
        return self.apply_overrides(lexicon=persona.get("lexicon"), syntax=persona.get("syntax"))

    def export_config(self) -> dict[str, Any]:
        return {
            "buckets": self._buckets.export(),
            "cfg": {
                "minTemplatesPerStance": self._config.min_templates_per_stance,
                "minLexiconPerPos": self._config.min_lexicon_per_pos,
            },
        }

    def import_config(self, saved: Any) -> bool:
        if not isinstance(saved, dict) or not isinstance(saved.get("buckets"), dict):
            return False
        self._buckets.replace(saved["buckets"])
        return True

    def is_bucket_mature(self, band: str) -> bool:
        return self._buckets.is_mature(
            band,
            self._config.min_templates_per_stance,
            self._config.min_lexicon_per_pos,
        )

    def get_lex_details(self, agent_id: Any = None, target_id: Any = None) -> dict[str, Any] | None:
        band = self._bridge.infer_band(agent_id, target_id)
        bucket = self._buckets.snapshot(band)
        if bucket is None:
            return None
        learned = isolate_learned(bucket, self._taste.base_templates(), self._taste.base_lexicon())
        return {
            "stance": band,
            "totalTemplates": len(bucket.templates),
            "totalLexicon": {key: len(bucket.lexicon[key]) for key in POS_KEYS},
            "learnedTemplates": learned.templates,
            "learnedLexicon": learned.lexicon,
        }

    def get_debug_bucket(self, band: str = "neutral") -> dict[str, Any] | None:
        if band not in STANCE_BANDS:
            return None
        bucket = self._buckets.snapshot(band)
        if bucket is None:
            return None
        return {
            "stance": band,
            "templates": bucket.templates[-DEBUG_TEMPLATE_SAMPLE_SIZE:],
            "lexiconSample": {key: bucket.lexicon[key][:DEBUG_LEXICON_SAMPLE_SIZE] for key in POS_KEYS},
        }


__all__ = [
    "MergerRuntimeConfig",
    "StyleMerger",
]
