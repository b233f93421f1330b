from __future__ import annotations

import importlib
from pathlib import Path
from typing import Type, Dict, List

from backend.app.logging_config import get_logger

logger = get_logger(__name__)


class AbstractProviderRegistry:
    """Abstract base class for provider registries.

    Each subclass automatically gets its own _providers dictionary.
    """

    def __init_subclass__(cls, **kwargs):
        """Ensure each subclass has its own _providers dict and discovery tracking."""
        super().__init_subclass__(**kwargs)
        cls._providers = {}
        cls._discovery_done = False

    @classmethod
    def register(cls, provider_class: Type) -> None:
        """Register a provider class under its key attribute.

        The key is read from the class itself (no instantiation), since
        providers take their configuration in the constructor.
        """
        key = getattr(provider_class, cls._get_provider_key_attr(), None)
        if not key:
            raise ValueError(
                f"Provider class {provider_class.__name__} must define {cls._get_provider_key_attr()}"
                )
        if key in cls._providers and cls._providers[key] is not provider_class:
            logger.warning(
                "Provider replaced",
                key=str(key),
                old=cls._providers[key].__name__,
                new=provider_class.__name__,
                )
        cls._providers[key] = provider_class

    @classmethod
    def all_providers(cls) -> Dict:
        """Mapping key -> provider class for every registered provider."""
        cls.auto_discover()
        return dict(cls._providers)

    @classmethod
    def list_providers(cls) -> List[Dict[str, str]]:
        """
        List all registered providers with their metadata.

        Returns:
            List of dicts with 'key', 'code' and 'name'
        """
        return [
            {
                'key': str(getattr(key, 'value', key)),
                'code': getattr(provider_class, 'provider_code', provider_class.__name__),
                'name': getattr(provider_class, 'provider_name', provider_class.__name__),
                }
            for key, provider_class in cls.all_providers().items()
            ]

    @classmethod
    def auto_discover(cls) -> None:
        """Import all modules in the provider folder to trigger registration."""
        if cls._discovery_done:
            return
        folder = cls._get_provider_folder()
        target_dir = Path(__file__).parent / folder

        if not target_dir.exists():
            cls._discovery_done = True
            return

        for py in sorted(target_dir.glob('*.py')):
            if py.name == '__init__.py' or not py.is_file():
                continue
            module_name = f"backend.app.services.{folder}.{py.stem}"
            try:
                importlib.import_module(module_name)
            except Exception as e:
                # A broken provider module must not take the others down
                logger.error("Error importing provider module", module_name=module_name, error=str(e))
                continue
        cls._discovery_done = True

    # --- methods to specialize in subclasses ---
    @classmethod
    def _get_provider_folder(cls) -> str:
        raise NotImplementedError

    @classmethod
    def _get_provider_key_attr(cls) -> str:
        return "provider_code"


class PriceProviderRegistry(AbstractProviderRegistry):
    """Market-data sources keyed by the AssetClass they price."""

    @classmethod
    def _get_provider_folder(cls) -> str:
        return "price_providers"

    @classmethod
    def _get_provider_key_attr(cls) -> str:
        return "asset_class"


# Decorator factory
def register_provider(registry_class: Type[AbstractProviderRegistry]):
    """
    Decorator to register a provider class with the given registry.

    Example usage:
    @register_provider(PriceProviderRegistry)
    class MyPriceProvider(PriceSourceProvider):
        asset_class = AssetClass.STOCK
        ...
    """

    def decorator(provider_class: Type):
        registry_class.register(provider_class)
        return provider_class

    return decorator
