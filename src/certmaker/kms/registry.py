"""Registry of KMS provider variants."""
from __future__ import annotations

from typing import Dict, Iterator, Mapping, Type

from .base import KMSSigner


class ProviderRegistry:
    """Runtime registry mapping a KMS type tag to its signer variant."""

    def __init__(self) -> None:
        self._providers: Dict[str, Type[KMSSigner]] = {}

    def register(self, signer_cls: Type[KMSSigner], override: bool = False) -> None:
        name = signer_cls.provider.value
        if not override and name in self._providers:
            raise ValueError(f"Provider already registered: {name}")
        self._providers[name] = signer_cls

    def unregister(self, name: str) -> None:
        self._providers.pop(name, None)

    def get(self, name: str) -> Type[KMSSigner]:
        try:
            return self._providers[name]
        except KeyError as exc:
            raise KeyError(f"Unknown provider: {name}") from exc

    def all(self) -> Mapping[str, Type[KMSSigner]]:
        return dict(self._providers)

    def __contains__(self, name: object) -> bool:
        return name in self._providers

    def __iter__(self) -> Iterator[str]:
        return iter(self._providers)


def load_builtin_providers(registry: ProviderRegistry) -> None:
    from .aws import AWSKMSSigner
    from .azure import AzureKMSSigner
    from .gcp import GCPKMSSigner
    from .hashivault import HashiVaultSigner

    for signer_cls in (AWSKMSSigner, GCPKMSSigner, AzureKMSSigner, HashiVaultSigner):
        registry.register(signer_cls, override=True)


_DEFAULT_REGISTRY: ProviderRegistry | None = None


def default_registry() -> ProviderRegistry:
    global _DEFAULT_REGISTRY
    if _DEFAULT_REGISTRY is None:
        registry = ProviderRegistry()
        load_builtin_providers(registry)
        _DEFAULT_REGISTRY = registry
    return _DEFAULT_REGISTRY


__all__ = ["ProviderRegistry", "default_registry", "load_builtin_providers"]
