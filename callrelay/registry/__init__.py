"""
Registry module: provider pool configuration and metadata.

Public API:
- ProviderName: Enum for inference providers
- SystemPromptPlacement: Inline vs out-of-band system prompts
- ProviderMetadata: Pydantic model for provider configuration
- ProviderRegistry: Central registry class with attempt orders
- get_provider_registry: Singleton accessor function
"""

from callrelay.registry.providers import (
    ProviderMetadata,
    ProviderName,
    ProviderRegistry,
    SystemPromptPlacement,
    get_provider_registry,
)

__all__ = [
    "ProviderName",
    "SystemPromptPlacement",
    "ProviderMetadata",
    "ProviderRegistry",
    "get_provider_registry",
]
