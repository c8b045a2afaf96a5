"""
Support Provider Factory

Registry-based factory selecting the helpdesk provider from configuration.

Design Considerations:
- Provider chosen by configuration key, not by inheritance chains
- Extra providers can be registered at runtime
- Unknown keys fall back to the local provider
- One token cache shared by every provider the factory builds
"""

import logging
from typing import Dict, Optional, Type

from support_relay.auth.token_cache import TokenCache
from support_relay.config.settings import SupportSettings
from support_relay.providers.base import SupportProvider
from support_relay.providers.kayako import KayakoProvider
from support_relay.providers.local import LocalProvider

logger = logging.getLogger(__name__)


class ProviderFactory:
    """
    Factory for creating support provider instances.
    """

    # Provider registry mapping configuration keys to classes
    _registry: Dict[str, Type[SupportProvider]] = {
        "null": LocalProvider,
        "local": LocalProvider,
        "kayako": KayakoProvider,
    }

    def __init__(self, token_cache: Optional[TokenCache] = None):
        self.token_cache = token_cache or TokenCache()

    @classmethod
    def register_provider(cls, name: str, provider_class: Type[SupportProvider]) -> None:
        """
        Register a new provider class.

        Args:
            name: Configuration key
            provider_class: Provider class

        Raises:
            ValueError: If the key is already registered
        """
        key = name.strip().lower()
        if key in cls._registry:
            raise ValueError(f"Provider {name} is already registered")

        cls._registry[key] = provider_class
        logger.info(f"Registered support provider: {key}")

    @classmethod
    def available_providers(cls) -> Dict[str, str]:
        return {key: provider.__name__ for key, provider in cls._registry.items()}

    def create(self, settings: SupportSettings) -> SupportProvider:
        """
        Build the provider selected by settings.provider.

        Args:
            settings: Support relay settings

        Returns:
            Provider instance (LocalProvider for unknown keys)
        """
        key = settings.provider
        provider_class = self._registry.get(key)

        if provider_class is None:
            logger.warning(f"Unknown support provider '{key}', falling back to local storage only")
            return LocalProvider()

        if provider_class is KayakoProvider:
            provider = KayakoProvider(settings.kayako, token_cache=self.token_cache)
        else:
            provider = provider_class(getattr(settings, key, None))

        logger.debug(f"Created support provider: {provider.name}")
        return provider
