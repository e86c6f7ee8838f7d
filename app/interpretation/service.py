"""Multi-provider fallback chain for lab-result interpretation.

Providers are tried in a fixed default order (OpenAI, Anthropic, Google),
optionally starting with a caller-preferred one, skipping any without an API
key. The first provider that returns a complete answer wins; its answer is
normalized (risk level coerced, confidence clamped) before being returned.
"""

from __future__ import annotations

from typing import Callable, Mapping, Sequence

from app.common.exceptions import ConfigurationError, InterpretationError, LLMError
from app.common.logger import get_logger
from app.infra.safe_logging import safe_log_text
from app.interpretation.models import (
    AIProvider,
    InterpretationRequest,
    InterpretationResult,
    RiskLevel,
)
from app.interpretation.providers import (
    AnthropicInterpreter,
    GoogleInterpreter,
    InterpretationProvider,
    OpenAIInterpreter,
    ProviderResponse,
)
from config.settings import AIProviderSettings, get_ai_provider_settings
from observability.metrics import get_metrics_client
from observability.timing import timed

logger = get_logger("interpretation.service")

DEFAULT_FALLBACK_ORDER: tuple[AIProvider, ...] = (
    AIProvider.OPENAI,
    AIProvider.ANTHROPIC,
    AIProvider.GOOGLE,
)

PROVIDER_KEY_ENV = {
    AIProvider.OPENAI: "OPENAI_API_KEY",
    AIProvider.ANTHROPIC: "ANTHROPIC_API_KEY",
    AIProvider.GOOGLE: "GOOGLE_AI_API_KEY",
}

PROVIDER_DISPLAY_NAMES = {
    AIProvider.OPENAI: "OpenAI",
    AIProvider.ANTHROPIC: "Anthropic",
    AIProvider.GOOGLE: "Google",
}

DEFAULT_CONFIDENCE = 0.5

ProviderFactory = Callable[[AIProviderSettings], InterpretationProvider]

_DEFAULT_FACTORIES: Mapping[AIProvider, ProviderFactory] = {
    AIProvider.OPENAI: OpenAIInterpreter.from_settings,
    AIProvider.ANTHROPIC: AnthropicInterpreter.from_settings,
    AIProvider.GOOGLE: GoogleInterpreter.from_settings,
}


def get_configured_providers(settings: AIProviderSettings | None = None) -> list[AIProvider]:
    """Providers with an API key set, in default fallback order."""
    settings = settings or get_ai_provider_settings()
    return [provider for provider in DEFAULT_FALLBACK_ORDER if settings.api_key(provider.value)]


def build_provider_order(
    configured: Sequence[AIProvider],
    preferred: AIProvider | str | None = None,
) -> list[AIProvider]:
    """Preferred provider first (when configured), then the default order."""
    preferred_provider: AIProvider | None = None
    if preferred:
        try:
            preferred_provider = AIProvider(preferred)
        except ValueError:
            logger.warning("Ignoring unknown preferred AI provider '%s'", preferred)

    order = list(DEFAULT_FALLBACK_ORDER)
    if preferred_provider is not None and preferred_provider in configured:
        order = [preferred_provider] + [p for p in order if p != preferred_provider]
    return [p for p in order if p in configured]


def normalize_result(
    provider: AIProvider,
    response: ProviderResponse,
    *,
    latency_ms: float,
) -> InterpretationResult:
    """Validate a provider answer and coerce it into an InterpretationResult.

    Raises LLMError when interpretation, summary or risk level is missing.
    """
    payload = response.payload
    if not payload.interpretation or not payload.summary or not payload.risk_level:
        raise LLMError("Incomplete response: missing required fields")

    try:
        risk_level = RiskLevel(payload.risk_level.strip().upper())
    except ValueError:
        risk_level = RiskLevel.MODERATE

    confidence = payload.confidence if payload.confidence is not None else DEFAULT_CONFIDENCE
    confidence = max(0.0, min(1.0, float(confidence)))

    return InterpretationResult(
        provider=provider,
        model=response.model,
        interpretation=payload.interpretation,
        summary=payload.summary,
        risk_level=risk_level,
        confidence=confidence,
        recommendations=list(payload.recommendations),
        token_usage=response.token_usage,
        latency_ms=int(round(latency_ms)),
    )


class InterpretationService:
    """Runs the provider fallback chain.

    ``providers`` overrides construction from settings (tests inject fakes
    here); only keys present in it are considered configured.
    """

    def __init__(
        self,
        providers: Mapping[AIProvider, InterpretationProvider] | None = None,
        *,
        settings: AIProviderSettings | None = None,
        factories: Mapping[AIProvider, ProviderFactory] | None = None,
    ) -> None:
        self._providers = dict(providers) if providers is not None else None
        self._settings = settings
        self._factories = dict(factories or _DEFAULT_FACTORIES)

    @property
    def settings(self) -> AIProviderSettings:
        return self._settings or get_ai_provider_settings()

    def configured_providers(self) -> list[AIProvider]:
        if self._providers is not None:
            return [p for p in DEFAULT_FALLBACK_ORDER if p in self._providers]
        return get_configured_providers(self.settings)

    def _provider(self, provider: AIProvider) -> InterpretationProvider:
        if self._providers is not None:
            return self._providers[provider]
        return self._factories[provider](self.settings)

    def interpret_lab_result(
        self,
        request: InterpretationRequest,
        preferred: AIProvider | str | None = None,
    ) -> InterpretationResult:
        configured = self.configured_providers()
        if not configured:
            env_names = ", ".join(PROVIDER_KEY_ENV[p] for p in DEFAULT_FALLBACK_ORDER)
            raise ConfigurationError(
                f"No AI providers configured. Set at least one of: {env_names}",
                variable=env_names,
            )

        metrics = get_metrics_client()
        errors: list[tuple[str, str]] = []

        for provider in build_provider_order(configured, preferred):
            tags = {"provider": provider.value}
            try:
                with timed("interpretation.provider_latency", tags) as timing:
                    response = self._provider(provider).interpret(request)
                result = normalize_result(provider, response, latency_ms=timing.elapsed_ms)
            except LLMError as exc:
                errors.append((provider.value, str(exc)))
                metrics.incr("interpretation.provider_failure", tags)
                logger.warning("AI provider %s failed: %s", provider.value, exc)
                continue

            metrics.incr("interpretation.provider_success", tags)
            logger.info(
                "Interpreted lab result test=%s provider=%s model=%s risk=%s",
                safe_log_text(request.test_name),
                provider.value,
                result.model,
                result.risk_level.value,
            )
            return result

        summary = "; ".join(f"{name}: {message}" for name, message in errors)
        raise InterpretationError(f"All AI providers failed. Errors: {summary}", errors=errors)


def provider_catalog(settings: AIProviderSettings | None = None) -> list[dict[str, object]]:
    """Describe each provider for status screens (never includes keys)."""
    settings = settings or get_ai_provider_settings()
    configured = set(get_configured_providers(settings))
    models = {
        AIProvider.OPENAI: settings.openai_model,
        AIProvider.ANTHROPIC: settings.anthropic_model,
        AIProvider.GOOGLE: settings.google_models[0] if settings.google_models else "",
    }
    return [
        {
            "id": provider.value,
            "name": PROVIDER_DISPLAY_NAMES[provider],
            "model": models[provider],
            "configured": provider in configured,
        }
        for provider in DEFAULT_FALLBACK_ORDER
    ]


def interpret_lab_result(
    request: InterpretationRequest,
    preferred: AIProvider | str | None = None,
) -> InterpretationResult:
    """Interpret with providers built from the current settings."""
    return InterpretationService().interpret_lab_result(request, preferred)


__all__ = [
    "DEFAULT_FALLBACK_ORDER",
    "InterpretationService",
    "build_provider_order",
    "get_configured_providers",
    "interpret_lab_result",
    "normalize_result",
    "provider_catalog",
]
