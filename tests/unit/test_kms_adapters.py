from __future__ import annotations

import copy

import pytest
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, padding, utils

from certmaker.exceptions import CapabilityError
from certmaker.kms.adapters import KMSEllipticCurvePrivateKey, KMSRSAPrivateKey, adapt_remote_key


def test_ec_adapter_hashes_locally(root_signer) -> None:
    key = root_signer.crypto_signer()
    assert isinstance(key, KMSEllipticCurvePrivateKey)
    assert isinstance(key, ec.EllipticCurvePrivateKey)
    assert key.curve.name == "secp256r1"
    assert key.key_size == 256

    signature = key.sign(b"hello", ec.ECDSA(hashes.SHA384()))
    key.public_key().verify(signature, b"hello", ec.ECDSA(hashes.SHA384()))

    digest = hashes.Hash(hashes.SHA384())
    digest.update(b"hello")
    assert root_signer.digests == [digest.finalize()]


def test_rsa_adapter_forwards_padding(rsa_signer, rsa_key) -> None:
    key = rsa_signer.crypto_signer()
    assert isinstance(key, KMSRSAPrivateKey)
    assert key.key_size == 2048
    pss = padding.PSS(mgf=padding.MGF1(hashes.SHA256()), salt_length=padding.PSS.DIGEST_LENGTH)
    signature = key.sign(b"hello", pss, hashes.SHA256())
    rsa_key.public_key().verify(signature, b"hello", pss, hashes.SHA256())


def test_adapter_refuses_private_material(root_signer) -> None:
    key = root_signer.crypto_signer()
    with pytest.raises(CapabilityError):
        key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        )
    with pytest.raises(CapabilityError):
        key.private_numbers()
    with pytest.raises(CapabilityError):
        key.exchange(ec.ECDH(), key.public_key())
    assert copy.copy(key) is key


def test_non_ecdsa_algorithm_is_rejected(root_signer) -> None:
    key = root_signer.crypto_signer()
    with pytest.raises(CapabilityError):
        key.sign(b"hello", object())


def test_ed25519_keys_cannot_be_adapted(root_signer, ed25519_key) -> None:
    with pytest.raises(CapabilityError, match="cannot sign certificates remotely"):
        adapt_remote_key(root_signer, ed25519_key.public_key())


def test_prehashed_digest_is_sent_unchanged(root_signer, rsa_signer, rsa_key) -> None:
    hasher = hashes.Hash(hashes.SHA256())
    hasher.update(b"hello")
    digest = hasher.finalize()

    ec_key = root_signer.crypto_signer()
    signature = ec_key.sign(digest, ec.ECDSA(utils.Prehashed(hashes.SHA256())))
    ec_key.public_key().verify(signature, b"hello", ec.ECDSA(hashes.SHA256()))
    assert root_signer.digests[-1] == digest

    rsa_adapter = rsa_signer.crypto_signer()
    signature = rsa_adapter.sign(digest, padding.PKCS1v15(), utils.Prehashed(hashes.SHA256()))
    rsa_key.public_key().verify(signature, b"hello", padding.PKCS1v15(), hashes.SHA256())
    assert rsa_signer.digests[-1] == digest


def test_prehashed_digest_length_is_checked(root_signer) -> None:
    key = root_signer.crypto_signer()
    with pytest.raises(CapabilityError, match="prehashed data is 5 bytes"):
        key.sign(b"hello", ec.ECDSA(utils.Prehashed(hashes.SHA256())))
