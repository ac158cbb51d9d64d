from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest import mock

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.x509.oid import NameOID

from certmaker.certificates import (
    CertificateTemplate,
    SignatureAlgorithm,
    classify_certificate,
    create_certificate,
    to_signature_algorithm,
    write_certificate_to_file,
)
from certmaker.exceptions import CertificateError, CertificateWriteError
from certmaker.models import Stage

NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _template(public_key, *, is_ca: bool, cn: str = "test") -> CertificateTemplate:
    return CertificateTemplate(
        subject=x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, cn)]),
        public_key=public_key,
        serial_number=42,
        not_before=NOW,
        not_after=NOW + timedelta(days=1),
        is_ca=is_ca,
        max_path_len=0 if is_ca else None,
        key_usage=x509.KeyUsage(
            digital_signature=not is_ca,
            content_commitment=False,
            key_encipherment=False,
            data_encipherment=False,
            key_agreement=False,
            key_cert_sign=is_ca,
            crl_sign=is_ca,
            encipher_only=False,
            decipher_only=False,
        ),
    )


def _self_signed(private_key) -> x509.Certificate:
    template = _template(private_key.public_key(), is_ca=True, cn="root")
    template.signature_algorithm = to_signature_algorithm(private_key, hashes.SHA256())
    return create_certificate(template, template, private_key.public_key(), private_key)


@pytest.mark.parametrize(
    "fixture, expected",
    [
        ("rsa_key", SignatureAlgorithm.SHA256_WITH_RSA),
        ("ed25519_key", SignatureAlgorithm.PURE_ED25519),
    ],
)
def test_signature_algorithm_follows_key_family(request, fixture: str, expected: SignatureAlgorithm) -> None:
    key = request.getfixturevalue(fixture)
    assert to_signature_algorithm(key, hashes.SHA256()) is expected


def test_signature_algorithm_for_remote_ec_key(root_signer) -> None:
    algorithm = to_signature_algorithm(root_signer.crypto_signer(), hashes.SHA384())
    assert algorithm is SignatureAlgorithm.ECDSA_WITH_SHA384
    assert algorithm.hash_algorithm().name == "sha384"


def test_signature_algorithm_rejects_unknown_key() -> None:
    with pytest.raises(CertificateError):
        to_signature_algorithm(object(), hashes.SHA256())


def test_self_signed_certificate(ec_keys) -> None:
    key = ec_keys["alias/root"]
    cert = _self_signed(key)
    cert.verify_directly_issued_by(cert)
    ski = cert.extensions.get_extension_for_class(x509.SubjectKeyIdentifier).value
    aki = cert.extensions.get_extension_for_class(x509.AuthorityKeyIdentifier).value
    assert aki.key_identifier == ski.digest
    assert cert.extensions.get_extension_for_class(x509.BasicConstraints).critical
    assert cert.signature_algorithm_oid == SignatureAlgorithm.ECDSA_WITH_SHA256.oid


def test_signed_by_remote_key(root_signer, ec_keys) -> None:
    issuer = _self_signed(ec_keys["alias/root"])
    leaf_key = ec_keys["alias/leaf"]
    template = _template(leaf_key.public_key(), is_ca=False, cn="leaf")
    signing_key = root_signer.crypto_signer()
    template.signature_algorithm = to_signature_algorithm(signing_key, hashes.SHA256())
    cert = create_certificate(template, issuer, leaf_key.public_key(), signing_key)
    cert.verify_directly_issued_by(issuer)
    assert cert.issuer == issuer.subject
    assert len(root_signer.digests) == 1


def test_algorithm_must_match_signer(ec_keys, rsa_key) -> None:
    template = _template(ec_keys["alias/leaf"].public_key(), is_ca=False)
    template.signature_algorithm = SignatureAlgorithm.SHA256_WITH_RSA
    with pytest.raises(CertificateError, match="cannot be produced"):
        create_certificate(template, template, template.public_key, ec_keys["alias/root"])

    template.signature_algorithm = None
    with pytest.raises(CertificateError, match="no signature algorithm"):
        create_certificate(template, template, template.public_key, rsa_key)


def test_classification(ec_keys) -> None:
    root_key = ec_keys["alias/root"]
    root = _self_signed(root_key)
    assert classify_certificate(root) is Stage.ROOT

    intermediate_key = ec_keys["alias/intermediate"]
    template = _template(intermediate_key.public_key(), is_ca=True, cn="root")
    template.signature_algorithm = SignatureAlgorithm.ECDSA_WITH_SHA256
    intermediate = create_certificate(template, root, intermediate_key.public_key(), root_key)
    # Same subject as the root, but the signature does not verify against itself.
    assert classify_certificate(intermediate) is Stage.INTERMEDIATE

    template = _template(ec_keys["alias/leaf"].public_key(), is_ca=False)
    template.signature_algorithm = SignatureAlgorithm.ECDSA_WITH_SHA256
    leaf = create_certificate(template, root, template.public_key, root_key)
    assert classify_certificate(leaf) is Stage.LEAF


def test_write_certificate(tmp_path, ec_keys, capsys) -> None:
    cert = _self_signed(ec_keys["alias/root"])
    target = tmp_path / "root.pem"
    assert write_certificate_to_file(cert, target) is Stage.ROOT

    pem = target.read_bytes()
    assert pem.startswith(b"-----BEGIN CERTIFICATE-----")
    assert pem.count(b"BEGIN") == 1
    assert x509.load_pem_x509_certificate(pem) == cert
    assert f"Saved root cert to {target}" in capsys.readouterr().out


def test_write_rejects_missing_certificate(tmp_path) -> None:
    with pytest.raises(CertificateWriteError, match="certificate is nil"):
        write_certificate_to_file(None, tmp_path / "none.pem")


def test_write_rejects_empty_der(tmp_path) -> None:
    cert = mock.Mock(spec=x509.Certificate)
    cert.public_bytes.return_value = b""
    target = tmp_path / "empty.pem"
    with pytest.raises(CertificateWriteError, match="no raw data"):
        write_certificate_to_file(cert, target)
    assert not target.exists()


def test_write_reports_unwritable_path(tmp_path, ec_keys) -> None:
    cert = _self_signed(ec_keys["alias/root"])
    target = tmp_path / "missing-dir" / "root.pem"
    with pytest.raises(CertificateWriteError, match="missing-dir"):
        write_certificate_to_file(cert, target)
