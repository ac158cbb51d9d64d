"""Turn a :class:`KMSConfig` into a signer handle for its active key."""
from __future__ import annotations

import structlog

from ..exceptions import CertMakerError, ConfigurationError, ProviderError
from ..models import KMSConfig
from .base import KMSSigner
from .registry import ProviderRegistry, default_registry
from .validation import validate_kms_config

_log = structlog.get_logger(__name__)


def init_kms(config: KMSConfig, *, registry: ProviderRegistry | None = None) -> KMSSigner:
    """Validate ``config`` and return a connected signer for ``config.root_key_id``.

    Validation runs before any provider is contacted. Provider settings are
    passed to the client library as values; the process environment is left
    untouched.
    """

    try:
        validate_kms_config(config)
    except ConfigurationError as exc:
        raise ConfigurationError(f"invalid KMS configuration: {exc}") from exc

    providers = registry or default_registry()
    if config.type not in providers:
        raise ConfigurationError(f"unsupported KMS type: {config.type}")
    signer_cls = providers.get(config.type)

    try:
        signer = signer_cls.from_config(config)
        if signer is not None:
            signer.connect()
    except CertMakerError:
        raise
    except Exception as exc:
        raise ProviderError(f"failed to initialize {signer_cls.display_name} KMS: {exc}") from exc

    if signer is None:
        raise ProviderError("KMS returned nil signer")

    _log.info("kms.initialized", provider=config.type, reference=signer.reference)
    return signer


__all__ = ["init_kms"]
