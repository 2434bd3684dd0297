# chat_relay/modules/providers.py

from typing import Dict, List, Optional, Sequence, Tuple

import httpx

from chat_relay.config import Settings
from chat_relay.modules.gemini_client import GeminiClient
from chat_relay.modules.provider_base import StreamingProvider
from chat_relay.modules.workers_ai_client import WorkersAIClient


def select_provider(model: str, prefixes: Sequence[Tuple[str, str]], default: str) -> str:
    """Returns the name of the provider serving `model`."""
    for prefix, name in prefixes:
        if model.startswith(prefix):
            return name
    return default


class ProviderRegistry:
    """Prefix table of providers; models matching no prefix go to the default one."""

    def __init__(self, default: StreamingProvider):
        self.default = default
        self._providers: Dict[str, StreamingProvider] = {default.name: default}
        self._prefixes: List[Tuple[str, str]] = []

    def register(self, prefix: str, provider: StreamingProvider) -> None:
        if not prefix:
            raise ValueError("A provider prefix cannot be empty")
        self._providers[provider.name] = provider
        self._prefixes.append((prefix, provider.name))

    @property
    def prefixes(self) -> List[Tuple[str, str]]:
        return list(self._prefixes)

    def select(self, model: str) -> StreamingProvider:
        return self._providers[select_provider(model, self._prefixes, self.default.name)]


def build_registry(settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> ProviderRegistry:
    """Workers AI by default, Gemini for models starting with the Gemini prefix."""
    registry = ProviderRegistry(WorkersAIClient(settings, transport))
    registry.register(settings.GEMINI_MODEL_PREFIX, GeminiClient(settings, transport))
    return registry
