##########################################################################
#                                                                        #
#  This file (model_router.py) handles endpoint selection and model      #
#  fallback routing for the Ollama-backed style collaborators.           #
#                                                                        #
##########################################################################

from __future__ import annotations

from dataclasses import asdict, dataclass, field
import logging
import random
from typing import Any, Callable
from urllib.parse import urlparse

from ollama import AsyncClient


logger = logging.getLogger(__name__)

DEFAULT_OLLAMA_HOST = "http://127.0.0.1:11434"


class ModelRouterError(Exception):
    """Base error for model router failures."""


class ModelResolutionError(ModelRouterError):
    """Raised when no valid model candidates can be resolved."""


class ModelExecutionError(ModelRouterError):
    """Raised when all candidate models fail execution."""

    def __init__(self, message: str, metadata: dict[str, Any] | None = None):
        super().__init__(message)
        self.metadata = metadata or {}


def _normalize_host(host: Any) -> str | None:
    if not isinstance(host, str) or not host.strip():
        return None
    return host.strip().rstrip("/")


def _is_valid_host(host: str | None) -> bool:
    if not host:
        return False
    parsed = urlparse(host)
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)


@dataclass
class ModelEndpoint:
    host: str
    model: str
    api_key: str | None = None

    @classmethod
    def from_payload(
        cls,
        payload: Any,
        default_host: str = DEFAULT_OLLAMA_HOST,
        default_model: str | None = None,
    ) -> "ModelEndpoint | None":
        if not isinstance(payload, dict):
            return None
        host = _normalize_host(payload.get("host") or payload.get("baseURL") or payload.get("url"))
        if host is None:
            host = _normalize_host(default_host)
        if not _is_valid_host(host):
            return None
        model = payload.get("model") or default_model
        if not isinstance(model, str) or not model.strip():
            return None
        api_key = payload.get("api_key") or payload.get("apiKey")
        return cls(
            host=host,
            model=model.strip(),
            api_key=api_key.strip() if isinstance(api_key, str) and api_key.strip() else None,
        )

    def client_kwargs(self) -> dict[str, Any]:
        if not self.api_key:
            return {}
        return {"headers": {"Authorization": f"Bearer {self.api_key}"}}


def parse_endpoints(
    entries: Any,
    default_host: str = DEFAULT_OLLAMA_HOST,
    default_model: str | None = None,
) -> list[ModelEndpoint]:
    if not isinstance(entries, list):
        return []
    endpoints: list[ModelEndpoint] = []
    for entry in entries:
        endpoint = ModelEndpoint.from_payload(entry, default_host=default_host, default_model=default_model)
        if endpoint is None:
            logger.warning(f"Ignoring unusable model endpoint entry: {entry!r}")
            continue
        endpoints.append(endpoint)
    return endpoints


class EndpointPool:
    """Uniform random pick over the configured endpoints.

    ``selector`` receives the endpoint list and returns one entry; swap it for
    round-robin or weighted selection.
    """

    def __init__(
        self,
        endpoints: list[ModelEndpoint] | None = None,
        selector: Callable[[list[ModelEndpoint]], ModelEndpoint] | None = None,
    ):
        self._endpoints = [endpoint for endpoint in (endpoints or []) if isinstance(endpoint, ModelEndpoint)]
        self._selector = selector or random.choice

    def __len__(self) -> int:
        return len(self._endpoints)

    @property
    def endpoints(self) -> list[ModelEndpoint]:
        return list(self._endpoints)

    def pick(self) -> ModelEndpoint | None:
        if not self._endpoints:
            return None
        return self._selector(list(self._endpoints))


@dataclass
class RouteMetadata:
    host: str
    requested_model: str | None
    candidate_models: list[str]
    selected_model: str | None = None
    attempted_models: list[str] = field(default_factory=list)
    fallback_count: int = 0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class ModelRouter:
    """Model fallback routing against one endpoint."""

    def __init__(self, endpoint: ModelEndpoint):
        self._endpoint = endpoint

    @property
    def endpoint(self) -> ModelEndpoint:
        return self._endpoint

    def candidate_models(
        self,
        requested_model: str | None = None,
        allowed_models: list[str] | None = None,
    ) -> list[str]:
        candidates: list[str] = []

        def add(value: str | None):
            if isinstance(value, str):
                value = value.strip()
            if value and value not in candidates:
                candidates.append(value)

        add(requested_model)
        if allowed_models:
            for allowed in allowed_models:
                add(allowed)
        add(self._endpoint.model)

        return candidates

    async def chat_with_fallback(
        self,
        messages: list[Any],
        requested_model: str | None = None,
        allowed_models: list[str] | None = None,
        **chat_kwargs: Any,
    ) -> tuple[Any, dict[str, Any]]:
        candidates = self.candidate_models(requested_model=requested_model, allowed_models=allowed_models)
        if not candidates:
            raise ModelResolutionError(f"No model candidates found for endpoint '{self._endpoint.host}'.")

        metadata = RouteMetadata(
            host=self._endpoint.host,
            requested_model=requested_model,
            candidate_models=list(candidates),
        )

        for candidate in candidates:
            metadata.attempted_models.append(candidate)
            client = AsyncClient(host=self._endpoint.host, **self._endpoint.client_kwargs())
            try:
                response = await client.chat(
                    model=candidate,
                    messages=messages,
                    stream=False,
                    **chat_kwargs,
                )
            except Exception as error:  # noqa: BLE001
                metadata.errors.append(f"{candidate}: {error}")
                continue
            metadata.selected_model = candidate
            metadata.fallback_count = max(0, len(metadata.attempted_models) - 1)
            logger.debug(f"Model route metadata: {metadata.to_dict()}")
            return response, metadata.to_dict()

        raise ModelExecutionError(
            f"All candidate models failed for endpoint '{self._endpoint.host}'.",
            metadata=metadata.to_dict(),
        )


__all__ = [
    "DEFAULT_OLLAMA_HOST",
    "EndpointPool",
    "ModelEndpoint",
    "ModelExecutionError",
    "ModelResolutionError",
    "ModelRouter",
    "ModelRouterError",
    "RouteMetadata",
    "parse_endpoints",
]
