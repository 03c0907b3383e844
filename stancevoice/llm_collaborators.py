##########################################################################
#                                                                        #
#  This file (llm_collaborators.py) provides the model-backed stance     #
#  classifier and part-of-speech tagger used by the style merger.        #
#                                                                        #
##########################################################################

from __future__ import annotations

import json
import logging
from typing import Any, Callable

from stancevoice.feature_extractor import TaggerResponse, validate_tag_records
from stancevoice.model_router import (
    DEFAULT_OLLAMA_HOST,
    EndpointPool,
    ModelEndpoint,
    ModelRouter,
    ModelRouterError,
    parse_endpoints,
)
from stancevoice.prompts import PART_OF_SPEECH_PROMPT, STANCE_CLASSIFIER_PROMPT
from stancevoice.runtime_settings import get_runtime_setting


logger = logging.getLogger(__name__)


def _read_field(container: Any, name: str) -> Any:
    if isinstance(container, dict):
        return container.get(name)
    return getattr(container, name, None)


def completion_text(response: Any) -> str:
    """Pull the assistant text out of a chat response, dict or object shaped."""
    content = _read_field(_read_field(response, "message"), "content")
    if isinstance(content, str):
        return content.strip()
    if isinstance(content, list):
        parts: list[str] = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
                continue
            text = _read_field(part, "text")
            if isinstance(text, str):
                parts.append(text)
        return "".join(parts).strip()
    return ""


def parse_completion_json(raw: Any) -> dict[str, Any] | None:
    """Parse a JSON object from a completion that may be fenced or wrapped in prose."""
    text = str(raw or "").strip()
    if not text:
        return None
    if text.startswith("```"):
        lines = text.split("\n")[1:]
        if lines and lines[-1].strip().startswith("```"):
            lines = lines[:-1]
        text = "\n".join(lines).strip()
    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end > start:
        text = text[start : end + 1]
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


class _PooledChatCollaborator:
    def __init__(
        self,
        pool: EndpointPool,
        *,
        max_tokens: int,
        allowed_models: list[str] | None = None,
    ):
        self._pool = pool
        self._max_tokens = max(1, int(max_tokens))
        self._allowed_models = list(allowed_models or [])

    async def _complete(self, system_prompt: str, text: str, **chat_kwargs: Any) -> str | None:
        endpoint = self._pool.pick()
        if endpoint is None:
            return None
        router = ModelRouter(endpoint)
        response, routing = await router.chat_with_fallback(
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": text},
            ],
            requested_model=endpoint.model,
            allowed_models=self._allowed_models,
            options={"num_predict": self._max_tokens},
            **chat_kwargs,
        )
        logger.debug(f"{self.__class__.__name__} route metadata: {routing}")
        return completion_text(response)


class LLMStanceClassifier(_PooledChatCollaborator):
    def __init__(self, pool: EndpointPool, *, max_tokens: int = 16, allowed_models: list[str] | None = None):
        super().__init__(pool, max_tokens=max_tokens, allowed_models=allowed_models)

    async def classify(self, text: str) -> str | None:
        try:
            content = await self._complete(STANCE_CLASSIFIER_PROMPT, text)
        except ModelRouterError as error:
            logger.warning(f"Stance classification failed: {error}")
            return None
        if not content:
            return None
        return content.lower()


class LLMPartOfSpeechTagger(_PooledChatCollaborator):
    def __init__(self, pool: EndpointPool, *, max_tokens: int = 512, allowed_models: list[str] | None = None):
        super().__init__(pool, max_tokens=max_tokens, allowed_models=allowed_models)

    async def tag(self, text: str) -> list[dict[str, Any]]:
        try:
            content = await self._complete(
                PART_OF_SPEECH_PROMPT,
                text,
                format=TaggerResponse.model_json_schema(),
            )
        except ModelRouterError as error:
            logger.warning(f"Part-of-speech tagging failed: {error}")
            return []
        if not content:
            return []
        parsed = parse_completion_json(content)
        if parsed is None:
            logger.warning("Part-of-speech tagger returned unparseable output, falling back to heuristic.")
            return []
        tokens = validate_tag_records(parsed.get("tokens"))
        return [token.model_dump(exclude_none=True) for token in tokens]


def endpoint_pool_from_settings(
    settings: dict[str, Any],
    selector: Callable[[list[ModelEndpoint]], ModelEndpoint] | None = None,
    default_model: str | None = None,
) -> EndpointPool:
    """Endpoints without their own model fall back to ``default_model``."""
    endpoints = parse_endpoints(
        get_runtime_setting(settings, "endpoints", []),
        default_host=get_runtime_setting(settings, "inference.default_ollama_host", DEFAULT_OLLAMA_HOST),
        default_model=default_model or get_runtime_setting(settings, "inference.default_classifier_model"),
    )
    return EndpointPool(endpoints, selector=selector)


def collaborators_from_settings(
    settings: dict[str, Any],
    selector: Callable[[list[ModelEndpoint]], ModelEndpoint] | None = None,
) -> tuple[LLMStanceClassifier, LLMPartOfSpeechTagger]:
    """Build the classifier and tagger over the configured endpoints, each with its own model."""
    classifier_model = get_runtime_setting(settings, "inference.default_classifier_model")
    tagger_model = get_runtime_setting(settings, "inference.default_tagger_model")
    classifier = LLMStanceClassifier(
        endpoint_pool_from_settings(settings, selector=selector, default_model=classifier_model),
        max_tokens=get_runtime_setting(settings, "inference.classifier_max_tokens", 16),
        allowed_models=[classifier_model] if classifier_model else None,
    )
    tagger = LLMPartOfSpeechTagger(
        endpoint_pool_from_settings(settings, selector=selector, default_model=tagger_model),
        max_tokens=get_runtime_setting(settings, "inference.tagger_max_tokens", 512),
        allowed_models=[tagger_model] if tagger_model else None,
    )
    return classifier, tagger


__all__ = [
    "LLMPartOfSpeechTagger",
    "LLMStanceClassifier",
    "collaborators_from_settings",
    "completion_text",
    "endpoint_pool_from_settings",
    "parse_completion_json",
]
