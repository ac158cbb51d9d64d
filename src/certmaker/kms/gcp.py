"""GCP Cloud KMS signer backed by google-cloud-kms."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric.padding import AsymmetricPadding
from cryptography.hazmat.primitives.asymmetric.types import PublicKeyTypes
from google.cloud import kms

from ..exceptions import CapabilityError
from ..models import KMSConfig, ProviderType
from .base import KMSSigner

REFERENCE_PREFIX = "gcpkms://"

_DIGEST_FIELDS = {"sha256": "sha256", "sha384": "sha384", "sha512": "sha512"}


@dataclass(frozen=True)
class GCPSettings:
    credentials_file: str


class GCPKMSSigner(KMSSigner):
    """Sign with a Cloud KMS key version.

    The algorithm (and RSA padding) is fixed by the key version, so the
    padding requested by the caller is not forwarded.
    """

    provider = ProviderType.GCP
    display_name = "GCP"

    def __init__(self, key_version: str, settings: GCPSettings, *, client: Any = None) -> None:
        super().__init__(f"{REFERENCE_PREFIX}{key_version}", client=client)
        self.key_version = key_version
        self.settings = settings

    @classmethod
    def from_config(cls, config: KMSConfig, *, client: Any = None) -> "GCPKMSSigner":
        settings = GCPSettings(credentials_file=config.option("gcp-credentials-file"))
        return cls(config.root_key_id, settings, client=client)

    def _connect(self) -> Any:
        return kms.KeyManagementServiceClient.from_service_account_file(self.settings.credentials_file)

    def _fetch_public_key(self) -> PublicKeyTypes:
        response = self.client.get_public_key(request={"name": self.key_version})
        return serialization.load_pem_public_key(response.pem.encode("utf-8"))

    def _sign_digest(
        self,
        digest: bytes,
        algorithm: hashes.HashAlgorithm,
        padding: AsymmetricPadding | None,
    ) -> bytes:
        field = _DIGEST_FIELDS.get(algorithm.name)
        if field is None:
            raise CapabilityError(f"GCP KMS cannot sign {algorithm.name} digests")
        response = self.client.asymmetric_sign(
            request={"name": self.key_version, "digest": {field: digest}}
        )
        return response.signature


__all__ = ["GCPKMSSigner", "GCPSettings"]
