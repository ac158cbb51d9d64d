"""Signer handle shared by every KMS provider variant."""
from __future__ import annotations

import abc
from typing import Any, ClassVar, Optional

import structlog
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric.padding import AsymmetricPadding
from cryptography.hazmat.primitives.asymmetric.types import (
    CertificateIssuerPrivateKeyTypes,
    PublicKeyTypes,
)

from ..exceptions import CertMakerError, ProviderError
from ..models import KMSConfig, ProviderType

_log = structlog.get_logger(__name__)


class KMSSigner(abc.ABC):
    """A key held by a remote KMS.

    The handle exposes the key's public half and a ``cryptography`` private
    key object whose ``sign`` forwards digests to the provider, so it can be
    handed straight to :meth:`cryptography.x509.CertificateBuilder.sign`.
    """

    provider: ClassVar[ProviderType]
    display_name: ClassVar[str]

    def __init__(self, reference: str, *, client: Any = None) -> None:
        self._reference = reference
        self._client = client
        self._public_key: Optional[PublicKeyTypes] = None

    @classmethod
    @abc.abstractmethod
    def from_config(cls, config: KMSConfig, *, client: Any = None) -> "KMSSigner":
        """Build a handle for ``config.root_key_id``."""

    @property
    def reference(self) -> str:
        return self._reference

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = self._connect()
        return self._client

    def connect(self) -> "KMSSigner":
        """Create the provider client eagerly so setup errors surface early."""
        _ = self.client
        return self

    def public_key(self) -> PublicKeyTypes:
        if self._public_key is None:
            try:
                self._public_key = self._fetch_public_key()
            except CertMakerError:
                raise
            except Exception as exc:
                raise ProviderError(
                    f"{self.display_name} KMS public key request failed for {self._reference}: {exc}"
                ) from exc
            _log.debug("kms.public_key", provider=self.provider.value, reference=self._reference)
        return self._public_key

    def crypto_signer(self) -> CertificateIssuerPrivateKeyTypes:
        from .adapters import adapt_remote_key

        return adapt_remote_key(self, self.public_key())

    def sign_digest(
        self,
        digest: bytes,
        algorithm: hashes.HashAlgorithm,
        padding: AsymmetricPadding | None = None,
    ) -> bytes:
        """Ask the provider to sign ``digest``.

        ECDSA signatures come back DER encoded. ``padding`` is only set for
        RSA keys.
        """
        try:
            signature = self._sign_digest(digest, algorithm, padding)
        except CertMakerError:
            raise
        except Exception as exc:
            raise ProviderError(f"{self.display_name} KMS signing failed for {self._reference}: {exc}") from exc
        if not signature:
            raise ProviderError(f"{self.display_name} KMS returned an empty signature for {self._reference}")
        _log.debug(
            "kms.signed",
            provider=self.provider.value,
            reference=self._reference,
            hash=algorithm.name,
        )
        return signature

    @abc.abstractmethod
    def _connect(self) -> Any:
        """Return a client for the provider API."""

    @abc.abstractmethod
    def _fetch_public_key(self) -> PublicKeyTypes:
        raise NotImplementedError

    @abc.abstractmethod
    def _sign_digest(
        self,
        digest: bytes,
        algorithm: hashes.HashAlgorithm,
        padding: AsymmetricPadding | None,
    ) -> bytes:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._reference!r})"


__all__ = ["KMSSigner"]
