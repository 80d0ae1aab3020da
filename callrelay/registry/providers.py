"""
Provider Registry

This module defines the pool of interchangeable conversational backends:
- Gemini (primary): native function calling, system prompt out-of-band
- OpenAI (secondary): chat completions, system prompt inline
- Groq (tertiary): OpenAI-compatible chat completions on open models

Provider order is a deliberate quality/cost preference, not a latency
race. Initial dispatch walks the configured order; reconciliation after
tool execution always tries the provider that proposed the tool calls
first, then the rest in the configured order.

Sampling settings are shared across providers so that switching backends
mid-call does not perceptibly change response length or tone.
"""

from enum import Enum

from pydantic import BaseModel, Field

from callrelay.config import Settings, get_settings


class ProviderName(str, Enum):
    """Supported inference providers."""

    GEMINI = "gemini"
    OPENAI = "openai"
    GROQ = "groq"


class SystemPromptPlacement(str, Enum):
    """Where a provider expects the system prompt."""

    INLINE = "inline"  # first message of the message list
    OUT_OF_BAND = "out_of_band"  # separate request field


class ProviderMetadata(BaseModel):
    """Complete metadata for a registered provider."""

    name: ProviderName = Field(
        ...,
        description="Provider identifier used in dispatch results and health tracking",
    )

    display_name: str = Field(
        ...,
        description="Human-readable provider name",
    )

    api_model_name: str = Field(
        ...,
        description="Model name used in provider API calls",
    )

    system_prompt_placement: SystemPromptPlacement = Field(
        ...,
        description="Whether the system prompt is sent inline or out-of-band",
    )

    temperature: float = Field(
        default=0.4,
        ge=0.0,
        le=2.0,
        description="Sampling temperature",
    )

    max_output_tokens: int = Field(
        default=500,
        gt=0,
        description="Maximum output tokens",
    )

    configured: bool = Field(
        default=False,
        description="Whether an API key is configured for this provider",
    )


_DISPLAY_NAMES = {
    ProviderName.GEMINI: "Google Gemini",
    ProviderName.OPENAI: "OpenAI",
    ProviderName.GROQ: "Groq",
}

_PLACEMENTS = {
    ProviderName.GEMINI: SystemPromptPlacement.OUT_OF_BAND,
    ProviderName.OPENAI: SystemPromptPlacement.INLINE,
    ProviderName.GROQ: SystemPromptPlacement.INLINE,
}


class ProviderRegistry:
    """
    Central registry of the configured providers.

    Attributes:
        _providers: Provider metadata keyed by name, in priority order
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._providers: dict[str, ProviderMetadata] = {}
        self._initialize_providers()

    def _initialize_providers(self) -> None:
        """Register providers in the configured priority order."""
        for name in self._settings.provider_order:
            provider = ProviderName(name)
            self._providers[provider.value] = ProviderMetadata(
                name=provider,
                display_name=_DISPLAY_NAMES[provider],
                api_model_name=self._settings.model_for(provider.value),
                system_prompt_placement=_PLACEMENTS[provider],
                temperature=self._settings.temperature,
                max_output_tokens=self._settings.max_output_tokens,
                configured=self._settings.api_key_for(provider.value) is not None,
            )

    def get_provider(self, name: str) -> ProviderMetadata | None:
        """
        Retrieve provider metadata by name.

        Args:
            name: Provider name (e.g., "openai")

        Returns:
            ProviderMetadata if registered, None otherwise
        """
        return self._providers.get(name)

    def list_providers(self) -> list[ProviderMetadata]:
        """Return all registered providers in priority order."""
        return list(self._providers.values())

    def default_order(self) -> list[str]:
        """Return the provider attempt order for initial dispatch."""
        return list(self._providers)

    def reconciliation_order(self, origin: str) -> list[str]:
        """
        Return the attempt order for sending tool results back.

        The originating provider is always tried first. The fallbacks follow
        in default order, except that the primary provider moves to the end:
        with gemini/openai/groq, an openai origin yields openai, groq, gemini.
        An unknown origin yields the default order.

        Args:
            origin: Provider that proposed the tool calls

        Returns:
            Ordered list of provider names
        """
        order = self.default_order()
        if origin not in self._providers:
            return order
        primary = order[0]
        fallbacks = [name for name in order[1:] if name != origin]
        if origin != primary:
            fallbacks.append(primary)
        return [origin] + fallbacks


_registry_instance: ProviderRegistry | None = None


def get_provider_registry() -> ProviderRegistry:
    """
    Get the global provider registry instance.

    Returns:
        The singleton ProviderRegistry instance
    """
    global _registry_instance
    if _registry_instance is None:
        _registry_instance = ProviderRegistry()
    return _registry_instance
