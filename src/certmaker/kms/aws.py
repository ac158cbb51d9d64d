"""AWS KMS signer backed by boto3."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import boto3
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding as asym_padding
from cryptography.hazmat.primitives.asymmetric.padding import AsymmetricPadding
from cryptography.hazmat.primitives.asymmetric.types import PublicKeyTypes

from ..exceptions import CapabilityError
from ..models import KMSConfig, ProviderType
from .base import KMSSigner

REFERENCE_PREFIX = "awskms:///"


@dataclass(frozen=True)
class AWSSettings:
    region: str


class AWSKMSSigner(KMSSigner):
    provider = ProviderType.AWS
    display_name = "AWS"

    def __init__(self, key_id: str, settings: AWSSettings, *, client: Any = None) -> None:
        super().__init__(f"{REFERENCE_PREFIX}{key_id}", client=client)
        self.key_id = key_id
        self.settings = settings

    @classmethod
    def from_config(cls, config: KMSConfig, *, client: Any = None) -> "AWSKMSSigner":
        return cls(config.root_key_id, AWSSettings(region=config.option("aws-region")), client=client)

    def _connect(self) -> Any:
        return boto3.client("kms", region_name=self.settings.region)

    def _fetch_public_key(self) -> PublicKeyTypes:
        response = self.client.get_public_key(KeyId=self.key_id)
        return serialization.load_der_public_key(response["PublicKey"])

    def _sign_digest(
        self,
        digest: bytes,
        algorithm: hashes.HashAlgorithm,
        padding: AsymmetricPadding | None,
    ) -> bytes:
        response = self.client.sign(
            KeyId=self.key_id,
            Message=digest,
            MessageType="DIGEST",
            SigningAlgorithm=signing_algorithm(algorithm, padding),
        )
        return response["Signature"]


def signing_algorithm(algorithm: hashes.HashAlgorithm, padding: AsymmetricPadding | None) -> str:
    """Map a hash and RSA padding to the AWS ``SigningAlgorithm`` name."""

    bits = algorithm.digest_size * 8
    if bits not in (256, 384, 512):
        raise CapabilityError(f"AWS KMS cannot sign {algorithm.name} digests")
    if padding is None:
        return f"ECDSA_SHA_{bits}"
    if isinstance(padding, asym_padding.PKCS1v15):
        return f"RSASSA_PKCS1_V1_5_SHA_{bits}"
    if isinstance(padding, asym_padding.PSS):
        return f"RSASSA_PSS_SHA_{bits}"
    raise CapabilityError(f"AWS KMS does not support RSA padding {padding.name}")


__all__ = ["AWSKMSSigner", "AWSSettings", "signing_algorithm"]
