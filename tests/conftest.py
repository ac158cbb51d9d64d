from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List

import pytest
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, rsa, utils

from certmaker.exceptions import ProviderError
from certmaker.kms.base import KMSSigner
from certmaker.kms.registry import ProviderRegistry
from certmaker.models import KMSConfig, ProviderType

FIXED_NOW = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class LocalKeySigner(KMSSigner):
    """Signer over an in-process private key, registered under the AWS tag."""

    provider = ProviderType.AWS
    display_name = "Local"
    keys: Dict[str, Any] = {}

    def __init__(self, key_id: str, private_key: Any) -> None:
        super().__init__(f"local:///{key_id}", client=private_key)
        self.key_id = key_id
        self.private_key = private_key
        self.digests: List[bytes] = []

    @classmethod
    def from_config(cls, config: KMSConfig, *, client: Any = None) -> "LocalKeySigner":
        try:
            private_key = cls.keys[config.root_key_id]
        except KeyError as exc:
            raise ProviderError(f"no local key named {config.root_key_id}") from exc
        return cls(config.root_key_id, private_key)

    def _connect(self) -> Any:
        return self.private_key

    def _fetch_public_key(self) -> Any:
        return self.private_key.public_key()

    def _sign_digest(self, digest: bytes, algorithm: Any, padding: Any) -> bytes:
        self.digests.append(digest)
        prehashed = utils.Prehashed(algorithm)
        if isinstance(self.private_key, ec.EllipticCurvePrivateKey):
            return self.private_key.sign(digest, ec.ECDSA(prehashed))
        return self.private_key.sign(digest, padding, prehashed)


@pytest.fixture(scope="session")
def ec_keys() -> Dict[str, ec.EllipticCurvePrivateKey]:
    return {
        "alias/root": ec.generate_private_key(ec.SECP256R1()),
        "alias/intermediate": ec.generate_private_key(ec.SECP384R1()),
        "alias/leaf": ec.generate_private_key(ec.SECP256R1()),
    }


@pytest.fixture(scope="session")
def rsa_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def key_store(ec_keys: Dict[str, Any]) -> Dict[str, Any]:
    return dict(ec_keys)


@pytest.fixture
def registry(key_store: Dict[str, Any]) -> ProviderRegistry:
    signer_cls = type("StoreSigner", (LocalKeySigner,), {"keys": key_store})
    providers = ProviderRegistry()
    providers.register(signer_cls)
    return providers


@pytest.fixture
def kms_config() -> KMSConfig:
    return KMSConfig(
        common_name="certmaker test",
        type="awskms",
        root_key_id="alias/root",
        leaf_key_id="alias/leaf",
        options={"aws-region": "us-east-1"},
    )


@pytest.fixture
def root_signer(key_store: Dict[str, Any]) -> LocalKeySigner:
    return LocalKeySigner("alias/root", key_store["alias/root"])


@pytest.fixture
def ed25519_key() -> ed25519.Ed25519PrivateKey:
    return ed25519.Ed25519PrivateKey.generate()


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW


@pytest.fixture
def rsa_signer(rsa_key: rsa.RSAPrivateKey) -> LocalKeySigner:
    return LocalKeySigner("alias/rsa", rsa_key)
