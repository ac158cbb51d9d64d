"""Structural checks for provider-specific key identifiers.

Nothing in this module talks to a provider. :func:`validate_kms_config` runs on
every gateway call so that malformed configuration fails before any network
traffic.
"""
from __future__ import annotations

from typing import Callable, Dict, Tuple

from ..exceptions import ConfigurationError
from ..models import KMSConfig, ProviderType

KeyIDValidator = Callable[[str, str], None]

_GCP_COMPONENTS: Tuple[Tuple[str, str], ...] = (
    ("projects/", "must start with 'projects/'"),
    ("/locations/", "must contain '/locations/'"),
    ("/keyRings/", "must contain '/keyRings/'"),
    ("/cryptoKeys/", "must contain '/cryptoKeys/'"),
    ("/cryptoKeyVersions/", "must contain '/cryptoKeyVersions/'"),
)

AZURE_PREFIX = "azurekms:name="
AZURE_VAULT_SEPARATOR = ";vault="


def split_azure_key_id(key_id: str) -> Tuple[str, str] | None:
    """Return ``(name, vault)`` for the ``azurekms:name=..;vault=..`` form."""

    if not key_id.startswith(AZURE_PREFIX):
        return None
    name_start = key_id.index("name=") + len("name=")
    vault_index = key_id.find(AZURE_VAULT_SEPARATOR)
    if vault_index == -1:
        return None
    name = key_id[name_start:vault_index].strip()
    vault = key_id[vault_index + len(AZURE_VAULT_SEPARATOR):].strip()
    return name, vault


def _aws_validator(config: KMSConfig) -> KeyIDValidator:
    region = config.option("aws-region")
    if not region:
        raise ConfigurationError("aws-region is required for AWS KMS")

    def validate(key_id: str, field: str) -> None:
        if key_id.startswith("arn:aws:kms:"):
            parts = key_id.split(":")
            if len(parts) < 6:
                raise ConfigurationError(f"invalid AWS KMS ARN format for {field}")
            if parts[3] != region:
                raise ConfigurationError(
                    f"region in ARN ({parts[3]}) does not match configured region ({region})"
                )
        elif key_id.startswith("alias/"):
            if not key_id[len("alias/"):]:
                raise ConfigurationError(f"alias name cannot be empty for {field}")
        else:
            raise ConfigurationError(f"awskms {field} must start with 'arn:aws:kms:' or 'alias/'")

    return validate


def _gcp_validator(config: KMSConfig) -> KeyIDValidator:
    if not config.option("gcp-credentials-file"):
        raise ConfigurationError("gcp-credentials-file is required for GCP KMS")

    def validate(key_id: str, field: str) -> None:
        for component, message in _GCP_COMPONENTS:
            if component not in key_id:
                raise ConfigurationError(f"gcpkms {field} {message}")

    return validate


def _azure_validator(config: KMSConfig) -> KeyIDValidator:
    if not config.option("azure-tenant-id"):
        raise ConfigurationError("azure-tenant-id is required for Azure KMS")

    def validate(key_id: str, field: str) -> None:
        if not key_id.startswith(AZURE_PREFIX):
            raise ConfigurationError(f"azurekms {field} must start with '{AZURE_PREFIX}'")
        parts = split_azure_key_id(key_id)
        if parts is None:
            raise ConfigurationError(f"azurekms {field} must contain '{AZURE_VAULT_SEPARATOR}' parameter")
        name, vault = parts
        if not name:
            raise ConfigurationError(f"key name cannot be empty for {field}")
        if not vault:
            raise ConfigurationError(f"vault name cannot be empty for {field}")

    return validate


def _hashivault_validator(config: KMSConfig) -> KeyIDValidator:
    if not config.option("vault-token"):
        raise ConfigurationError("vault-token is required for HashiVault KMS")
    if not config.option("vault-address"):
        raise ConfigurationError("vault-address is required for HashiVault KMS")

    def validate(key_id: str, field: str) -> None:
        parts = key_id.split("/")
        if len(parts) < 3:
            raise ConfigurationError(f"hashivault {field} must be in format: transit/keys/keyname")
        if parts[0] != "transit" or parts[1] != "keys":
            raise ConfigurationError(f"hashivault {field} must start with 'transit/keys/'")
        if not parts[2]:
            raise ConfigurationError(f"key name cannot be empty for {field}")

    return validate


_VALIDATORS: Dict[str, Callable[[KMSConfig], KeyIDValidator]] = {
    ProviderType.AWS.value: _aws_validator,
    ProviderType.GCP.value: _gcp_validator,
    ProviderType.AZURE.value: _azure_validator,
    ProviderType.HASHIVAULT.value: _hashivault_validator,
}


def validate_kms_config(config: KMSConfig) -> None:
    """Raise :class:`ConfigurationError` if ``config`` is not usable.

    Provider options are checked first, then every non-empty key identifier
    in the order root, intermediate, leaf. The root and leaf identifiers are
    only required to be present after the provider checks pass, so a
    provider-specific message wins over the generic one.
    """

    if not config.type:
        raise ConfigurationError("KMS type cannot be empty")

    factory = _VALIDATORS.get(config.type)
    if factory is None:
        raise ConfigurationError(f"unsupported KMS type: {config.type}")

    validate_key_id = factory(config)
    for key_id, field in (
        (config.root_key_id, "RootKeyID"),
        (config.intermediate_key_id, "IntermediateKeyID"),
        (config.leaf_key_id, "LeafKeyID"),
    ):
        if key_id:
            validate_key_id(key_id, field)

    if not config.root_key_id:
        raise ConfigurationError("RootKeyID must be specified")
    if not config.leaf_key_id:
        raise ConfigurationError("LeafKeyID must be specified")


__all__ = ["split_azure_key_id", "validate_kms_config"]
