"""Azure Key Vault signer backed by azure-keyvault-keys."""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Tuple

from azure.identity import (
    AzureCliCredential,
    ChainedTokenCredential,
    ClientSecretCredential,
    DefaultAzureCredential,
)
from azure.keyvault.keys import KeyClient
from azure.keyvault.keys.crypto import SignatureAlgorithm as AzureSignatureAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.hazmat.primitives.asymmetric import padding as asym_padding
from cryptography.hazmat.primitives.asymmetric.padding import AsymmetricPadding
from cryptography.hazmat.primitives.asymmetric.types import PublicKeyTypes
from cryptography.hazmat.primitives.asymmetric.utils import encode_dss_signature

from ..exceptions import CapabilityError, ConfigurationError
from ..models import KMSConfig, ProviderType
from .base import KMSSigner
from .validation import split_azure_key_id

REFERENCE_PREFIX = "azurekms://"
AUTHORITY_HOST = "https://login.microsoftonline.com/"

_CURVES = {
    "P-256": ec.SECP256R1,
    "P-384": ec.SECP384R1,
    "P-521": ec.SECP521R1,
}


@dataclass(frozen=True)
class AzureSettings:
    tenant_id: str
    authority_host: str = AUTHORITY_HOST


def key_uri_for(key_id: str) -> str:
    """Rewrite ``azurekms:name=<n>;vault=<v>`` to ``azurekms://<v>.vault.azure.net/<n>``.

    Any other form is returned unchanged.
    """

    parts = split_azure_key_id(key_id)
    if parts is None:
        return key_id
    name, vault = parts
    return f"{REFERENCE_PREFIX}{vault}.vault.azure.net/{name}"


def parse_key_uri(uri: str) -> Tuple[str, str, str | None]:
    """Split a key URI into ``(vault_url, key_name, key_version)``."""

    if not uri.startswith(REFERENCE_PREFIX):
        raise ConfigurationError(f"azurekms key reference must start with '{REFERENCE_PREFIX}': {uri}")
    host, _, path = uri[len(REFERENCE_PREFIX):].partition("/")
    segments = [segment for segment in path.split("/") if segment]
    if not host or not segments:
        raise ConfigurationError(f"azurekms key reference is missing the vault or key name: {uri}")
    version = segments[1] if len(segments) > 1 else None
    return f"https://{host}", segments[0], version


def _int(value: bytes) -> int:
    return int.from_bytes(value, "big")


def _text(value: Any) -> str:
    return str(getattr(value, "value", value))


def build_credential(settings: AzureSettings, environ: Optional[Mapping[str, str]] = None) -> Any:
    """Credential chain that authenticates against ``settings.tenant_id``.

    A service principal from ``AZURE_CLIENT_ID`` and ``AZURE_CLIENT_SECRET`` is
    tried first, then the Azure CLI login, then the remaining
    ``DefaultAzureCredential`` sources.
    """

    env = os.environ if environ is None else environ
    tenant_id = settings.tenant_id or env.get("AZURE_TENANT_ID", "")
    credentials: List[Any] = []
    client_id = env.get("AZURE_CLIENT_ID")
    client_secret = env.get("AZURE_CLIENT_SECRET")
    service_principal = bool(client_id and client_secret)
    if service_principal:
        credentials.append(
            ClientSecretCredential(
                tenant_id=tenant_id,
                client_id=client_id,
                client_secret=client_secret,
                authority=settings.authority_host,
            )
        )
    credentials.append(AzureCliCredential(tenant_id=tenant_id))
    credentials.append(
        DefaultAzureCredential(
            authority=settings.authority_host,
            additionally_allowed_tenants=["*"],
            exclude_environment_credential=service_principal,
            exclude_cli_credential=True,
            workload_identity_tenant_id=tenant_id,
            interactive_browser_tenant_id=tenant_id,
            shared_cache_tenant_id=tenant_id,
        )
    )
    return ChainedTokenCredential(*credentials)


def public_key_from_jwk(jwk: Any) -> PublicKeyTypes:
    kty = _text(jwk.kty)
    if kty.startswith("EC"):
        curve = _CURVES.get(_text(jwk.crv))
        if curve is None:
            raise CapabilityError(f"unsupported Azure key curve: {jwk.crv}")
        return ec.EllipticCurvePublicNumbers(_int(jwk.x), _int(jwk.y), curve()).public_key()
    if kty.startswith("RSA"):
        return rsa.RSAPublicNumbers(_int(jwk.e), _int(jwk.n)).public_key()
    raise CapabilityError(f"unsupported Azure key type: {kty}")


class AzureKMSSigner(KMSSigner):
    provider = ProviderType.AZURE
    display_name = "Azure"

    def __init__(self, key_uri: str, settings: AzureSettings, *, client: Any = None) -> None:
        super().__init__(key_uri, client=client)
        self.vault_url, self.key_name, self.key_version = parse_key_uri(key_uri)
        self.settings = settings
        self._crypto_client: Any = None

    @classmethod
    def from_config(cls, config: KMSConfig, *, client: Any = None) -> "AzureKMSSigner":
        settings = AzureSettings(tenant_id=config.option("azure-tenant-id"))
        return cls(key_uri_for(config.root_key_id), settings, client=client)

    def _connect(self) -> Any:
        credential = build_credential(self.settings)
        return KeyClient(vault_url=self.vault_url, credential=credential)

    def _fetch_public_key(self) -> PublicKeyTypes:
        key = self.client.get_key(self.key_name, version=self.key_version)
        return public_key_from_jwk(key.key)

    def _sign_digest(
        self,
        digest: bytes,
        algorithm: hashes.HashAlgorithm,
        padding: AsymmetricPadding | None,
    ) -> bytes:
        if self._crypto_client is None:
            self._crypto_client = self.client.get_cryptography_client(self.key_name, key_version=self.key_version)
        result = self._crypto_client.sign(signature_algorithm(algorithm, padding), digest)
        if padding is not None:
            return result.signature
        # Key Vault returns ECDSA signatures as the raw r || s concatenation.
        half = len(result.signature) // 2
        return encode_dss_signature(_int(result.signature[:half]), _int(result.signature[half:]))


def signature_algorithm(algorithm: hashes.HashAlgorithm, padding: AsymmetricPadding | None) -> AzureSignatureAlgorithm:
    bits = algorithm.digest_size * 8
    if bits not in (256, 384, 512):
        raise CapabilityError(f"Azure Key Vault cannot sign {algorithm.name} digests")
    if padding is None:
        prefix = "es"
    elif isinstance(padding, asym_padding.PKCS1v15):
        prefix = "rs"
    elif isinstance(padding, asym_padding.PSS):
        prefix = "ps"
    else:
        raise CapabilityError(f"Azure Key Vault does not support RSA padding {padding.name}")
    return getattr(AzureSignatureAlgorithm, f"{prefix}{bits}")


__all__ = [
    "AzureKMSSigner",
    "AzureSettings",
    "build_credential",
    "key_uri_for",
    "parse_key_uri",
    "public_key_from_jwk",
    "signature_algorithm",
]
