"""Expose a KMS-held key through the ``cryptography`` private key interfaces.

``x509.CertificateBuilder.sign`` accepts any subclass of the RSA or EC private
key base classes and calls its ``sign`` method with the to-be-signed bytes.
The adapters here hash those bytes locally and send only the digest to the
provider.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, NoReturn, Tuple

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa, utils
from cryptography.hazmat.primitives.asymmetric.padding import AsymmetricPadding
from cryptography.hazmat.primitives.asymmetric.types import (
    CertificateIssuerPrivateKeyTypes,
    PublicKeyTypes,
)

from ..exceptions import CapabilityError

if TYPE_CHECKING:  # pragma: no cover
    from .base import KMSSigner


def _digest(data: bytes, algorithm: Any) -> Tuple[bytes, hashes.HashAlgorithm]:
    """Return the digest to send and the hash it was computed with.

    ``Prehashed`` data is already a digest and passes through unchanged.
    """
    if isinstance(algorithm, utils.Prehashed):
        hash_algorithm = algorithm._algorithm
        if len(data) != hash_algorithm.digest_size:
            raise CapabilityError(
                f"prehashed data is {len(data)} bytes, expected {hash_algorithm.digest_size} for {hash_algorithm.name}"
            )
        return data, hash_algorithm
    if not isinstance(algorithm, hashes.HashAlgorithm):
        raise CapabilityError(f"unsupported hash for remote signing: {algorithm!r}")
    hasher = hashes.Hash(algorithm)
    hasher.update(data)
    return hasher.finalize(), algorithm


def _refuse(what: str) -> NoReturn:
    raise CapabilityError(f"{what} is not available for keys held in a KMS")


class KMSEllipticCurvePrivateKey(ec.EllipticCurvePrivateKey):
    def __init__(self, signer: "KMSSigner", public_key: ec.EllipticCurvePublicKey) -> None:
        self._signer = signer
        self._public_key = public_key

    @property
    def signer(self) -> "KMSSigner":
        return self._signer

    @property
    def curve(self) -> ec.EllipticCurve:
        return self._public_key.curve

    @property
    def key_size(self) -> int:
        return self._public_key.key_size

    def public_key(self) -> ec.EllipticCurvePublicKey:
        return self._public_key

    def sign(self, data: bytes, signature_algorithm: ec.EllipticCurveSignatureAlgorithm) -> bytes:
        if not isinstance(signature_algorithm, ec.ECDSA):
            raise CapabilityError(f"unsupported EC signature algorithm: {signature_algorithm!r}")
        digest, algorithm = _digest(data, signature_algorithm.algorithm)
        return self._signer.sign_digest(digest, algorithm)

    def exchange(self, algorithm: ec.ECDH, peer_public_key: ec.EllipticCurvePublicKey) -> bytes:
        _refuse("ECDH key exchange")

    def private_numbers(self) -> ec.EllipticCurvePrivateNumbers:
        _refuse("Private key material")

    def private_bytes(
        self,
        encoding: serialization.Encoding,
        format: serialization.PrivateFormat,
        encryption_algorithm: serialization.KeySerializationEncryption,
    ) -> bytes:
        _refuse("Private key serialization")

    def __copy__(self) -> "KMSEllipticCurvePrivateKey":
        return self

    def __deepcopy__(self, memo: dict) -> "KMSEllipticCurvePrivateKey":
        return self


class KMSRSAPrivateKey(rsa.RSAPrivateKey):
    def __init__(self, signer: "KMSSigner", public_key: rsa.RSAPublicKey) -> None:
        self._signer = signer
        self._public_key = public_key

    @property
    def signer(self) -> "KMSSigner":
        return self._signer

    @property
    def key_size(self) -> int:
        return self._public_key.key_size

    def public_key(self) -> rsa.RSAPublicKey:
        return self._public_key

    def sign(
        self,
        data: bytes,
        padding: AsymmetricPadding,
        algorithm: Any,
    ) -> bytes:
        digest, hash_algorithm = _digest(data, algorithm)
        return self._signer.sign_digest(digest, hash_algorithm, padding)

    def decrypt(self, ciphertext: bytes, padding: AsymmetricPadding) -> bytes:
        _refuse("Decryption")

    def private_numbers(self) -> rsa.RSAPrivateNumbers:
        _refuse("Private key material")

    def private_bytes(
        self,
        encoding: serialization.Encoding,
        format: serialization.PrivateFormat,
        encryption_algorithm: serialization.KeySerializationEncryption,
    ) -> bytes:
        _refuse("Private key serialization")

    def __copy__(self) -> "KMSRSAPrivateKey":
        return self

    def __deepcopy__(self, memo: dict) -> "KMSRSAPrivateKey":
        return self


def adapt_remote_key(signer: "KMSSigner", public_key: PublicKeyTypes) -> CertificateIssuerPrivateKeyTypes:
    if isinstance(public_key, ec.EllipticCurvePublicKey):
        return KMSEllipticCurvePrivateKey(signer, public_key)
    if isinstance(public_key, rsa.RSAPublicKey):
        return KMSRSAPrivateKey(signer, public_key)
    raise CapabilityError(
        f"{signer.reference} holds a {type(public_key).__name__}, which cannot sign certificates remotely"
    )


__all__ = ["KMSEllipticCurvePrivateKey", "KMSRSAPrivateKey", "adapt_remote_key"]
