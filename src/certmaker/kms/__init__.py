"""KMS signer handles and the gateway that builds them."""
from .base import KMSSigner
from .gateway import init_kms
from .registry import ProviderRegistry, default_registry
from .validation import validate_kms_config

__all__ = ["KMSSigner", "ProviderRegistry", "default_registry", "init_kms", "validate_kms_config"]
