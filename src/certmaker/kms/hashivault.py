"""HashiCorp Vault transit signer backed by hvac."""
from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import Any

import hvac
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding as asym_padding
from cryptography.hazmat.primitives.asymmetric.padding import AsymmetricPadding
from cryptography.hazmat.primitives.asymmetric.types import PublicKeyTypes

from ..exceptions import CapabilityError, ProviderError
from ..models import KMSConfig, ProviderType
from .base import KMSSigner

REFERENCE_PREFIX = "hashivault://"

_HASH_NAMES = {"sha256": "sha2-256", "sha384": "sha2-384", "sha512": "sha2-512"}


@dataclass(frozen=True)
class HashiVaultSettings:
    address: str
    token: str

    def __repr__(self) -> str:
        return f"HashiVaultSettings(address={self.address!r}, token='***')"


class HashiVaultSigner(KMSSigner):
    """Sign with a key in a Vault transit mount.

    Key identifiers have the form ``<mount>/keys/<name>``; the mount is always
    ``transit`` once validation has passed.
    """

    provider = ProviderType.HASHIVAULT
    display_name = "HashiVault"

    def __init__(self, key_path: str, settings: HashiVaultSettings, *, client: Any = None) -> None:
        super().__init__(f"{REFERENCE_PREFIX}{key_path}", client=client)
        parts = key_path.split("/")
        self.mount_point = parts[0]
        self.key_name = parts[2] if len(parts) > 2 else ""
        self.settings = settings

    @classmethod
    def from_config(cls, config: KMSConfig, *, client: Any = None) -> "HashiVaultSigner":
        settings = HashiVaultSettings(
            address=config.option("vault-address"),
            token=config.option("vault-token"),
        )
        return cls(config.root_key_id, settings, client=client)

    def _connect(self) -> Any:
        return hvac.Client(url=self.settings.address, token=self.settings.token)

    def _fetch_public_key(self) -> PublicKeyTypes:
        response = self.client.secrets.transit.read_key(name=self.key_name, mount_point=self.mount_point)
        versions = response["data"]["keys"]
        latest = versions[str(max(int(version) for version in versions))]
        if not isinstance(latest, dict) or not latest.get("public_key"):
            raise CapabilityError(f"{self.reference} is not an asymmetric signing key")
        return serialization.load_pem_public_key(latest["public_key"].encode("utf-8"))

    def _sign_digest(
        self,
        digest: bytes,
        algorithm: hashes.HashAlgorithm,
        padding: AsymmetricPadding | None,
    ) -> bytes:
        hash_name = _HASH_NAMES.get(algorithm.name)
        if hash_name is None:
            raise CapabilityError(f"HashiVault cannot sign {algorithm.name} digests")
        kwargs: dict[str, Any] = {
            "name": self.key_name,
            "hash_input": base64.b64encode(digest).decode("ascii"),
            "hash_algorithm": hash_name,
            "prehashed": True,
            "mount_point": self.mount_point,
        }
        if padding is None:
            kwargs["marshaling_algorithm"] = "asn1"
        elif isinstance(padding, asym_padding.PKCS1v15):
            kwargs["signature_algorithm"] = "pkcs1v15"
        elif isinstance(padding, asym_padding.PSS):
            kwargs["signature_algorithm"] = "pss"
        else:
            raise CapabilityError(f"HashiVault does not support RSA padding {padding.name}")

        response = self.client.secrets.transit.sign_data(**kwargs)
        return decode_signature(response["data"]["signature"])


def decode_signature(value: str) -> bytes:
    """Decode a ``vault:v<N>:<base64>`` transit signature."""

    parts = value.split(":")
    if len(parts) != 3 or parts[0] != "vault":
        raise ProviderError(f"unexpected Vault signature format: {value[:16]}...")
    return base64.b64decode(parts[2])


__all__ = ["HashiVaultSettings", "HashiVaultSigner", "decode_signature"]
