"""Signature algorithm selection for certificate issuers."""
from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, rsa
from cryptography.x509.oid import SignatureAlgorithmOID

from ..exceptions import CertificateError


class KeyFamily(str, Enum):
    RSA = "RSA"
    ECDSA = "ECDSA"
    ED25519 = "Ed25519"


class SignatureAlgorithm(Enum):
    SHA256_WITH_RSA = (KeyFamily.RSA, "sha256", SignatureAlgorithmOID.RSA_WITH_SHA256)
    SHA384_WITH_RSA = (KeyFamily.RSA, "sha384", SignatureAlgorithmOID.RSA_WITH_SHA384)
    SHA512_WITH_RSA = (KeyFamily.RSA, "sha512", SignatureAlgorithmOID.RSA_WITH_SHA512)
    ECDSA_WITH_SHA256 = (KeyFamily.ECDSA, "sha256", SignatureAlgorithmOID.ECDSA_WITH_SHA256)
    ECDSA_WITH_SHA384 = (KeyFamily.ECDSA, "sha384", SignatureAlgorithmOID.ECDSA_WITH_SHA384)
    ECDSA_WITH_SHA512 = (KeyFamily.ECDSA, "sha512", SignatureAlgorithmOID.ECDSA_WITH_SHA512)
    PURE_ED25519 = (KeyFamily.ED25519, None, SignatureAlgorithmOID.ED25519)

    @property
    def family(self) -> KeyFamily:
        return self.value[0]

    @property
    def oid(self):
        return self.value[2]

    def hash_algorithm(self) -> Optional[hashes.HashAlgorithm]:
        """Hash to pass to ``CertificateBuilder.sign``; ``None`` for Ed25519."""
        name = self.value[1]
        if name is None:
            return None
        return {"sha256": hashes.SHA256, "sha384": hashes.SHA384, "sha512": hashes.SHA512}[name]()


_BY_FAMILY_AND_HASH = {(alg.family, alg.value[1]): alg for alg in SignatureAlgorithm}


def key_family(key: Any) -> KeyFamily:
    """Classify a private or public key by the signature scheme it produces."""

    if isinstance(key, (rsa.RSAPrivateKey, rsa.RSAPublicKey)):
        return KeyFamily.RSA
    if isinstance(key, (ec.EllipticCurvePrivateKey, ec.EllipticCurvePublicKey)):
        return KeyFamily.ECDSA
    if isinstance(key, (ed25519.Ed25519PrivateKey, ed25519.Ed25519PublicKey)):
        return KeyFamily.ED25519
    raise CertificateError(f"unsupported signing key type: {type(key).__name__}")


def to_signature_algorithm(signer: Any, hash_algorithm: hashes.HashAlgorithm) -> SignatureAlgorithm:
    """Pick the certificate signature algorithm ``signer`` produces with ``hash_algorithm``.

    Ed25519 signs the message directly, so the hash is ignored for it.
    """

    family = key_family(signer)
    if family is KeyFamily.ED25519:
        return SignatureAlgorithm.PURE_ED25519
    algorithm = _BY_FAMILY_AND_HASH.get((family, hash_algorithm.name))
    if algorithm is None:
        raise CertificateError(f"unsupported hash {hash_algorithm.name} for {family.value} keys")
    return algorithm


__all__ = ["KeyFamily", "SignatureAlgorithm", "key_family", "to_signature_algorithm"]
