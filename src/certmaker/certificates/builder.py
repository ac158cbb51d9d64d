"""Assemble and sign X.509 certificates from templates."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Optional, Tuple, Union

import structlog
from cryptography import x509
from cryptography.hazmat.primitives.asymmetric.types import PublicKeyTypes
from cryptography.x509.oid import ObjectIdentifier

from ..exceptions import CertificateError, CertMakerError
from .signature import SignatureAlgorithm, key_family

_log = structlog.get_logger(__name__)


@dataclass
class CertificateTemplate:
    """Everything needed to issue one certificate except the issuer's signature.

    ``signature_algorithm`` stays unset until the chain builder knows which key
    will sign the certificate.
    """

    subject: x509.Name
    public_key: PublicKeyTypes
    serial_number: int
    not_before: datetime
    not_after: datetime
    is_ca: bool = False
    max_path_len: Optional[int] = None
    key_usage: Optional[x509.KeyUsage] = None
    ext_key_usage: List[ObjectIdentifier] = field(default_factory=list)
    extensions: List[Tuple[x509.ExtensionType, bool]] = field(default_factory=list)
    authority_key_identifier: Optional[x509.AuthorityKeyIdentifier] = None
    signature_algorithm: Optional[SignatureAlgorithm] = None


Issuer = Union[CertificateTemplate, x509.Certificate]


def authority_key_identifier_for(issuer: x509.Certificate) -> x509.AuthorityKeyIdentifier:
    """Derive the authority key identifier for certificates issued by ``issuer``."""
    try:
        ski = issuer.extensions.get_extension_for_class(x509.SubjectKeyIdentifier).value
    except x509.ExtensionNotFound:
        return x509.AuthorityKeyIdentifier.from_issuer_public_key(issuer.public_key())
    return x509.AuthorityKeyIdentifier.from_issuer_subject_key_identifier(ski)


def is_ca_certificate(cert: x509.Certificate) -> bool:
    try:
        constraints = cert.extensions.get_extension_for_class(x509.BasicConstraints).value
    except x509.ExtensionNotFound:
        return False
    return constraints.ca


def create_certificate(
    template: CertificateTemplate,
    issuer: Issuer,
    public_key: PublicKeyTypes,
    signer: Any,
) -> x509.Certificate:
    """Sign ``template`` for ``public_key`` with ``signer``.

    ``issuer`` is either the template itself (self-signed) or the parent
    certificate. ``signer`` is the issuer's private key, or an adapter for a
    key held in a KMS.
    """

    algorithm = template.signature_algorithm
    if algorithm is None:
        raise CertificateError("template has no signature algorithm")
    family = key_family(signer)
    if family is not algorithm.family:
        raise CertificateError(
            f"signature algorithm {algorithm.name} cannot be produced by a {family.value} signing key"
        )

    ski = x509.SubjectKeyIdentifier.from_public_key(public_key)
    if issuer is template:
        issuer_name = template.subject
        aki = x509.AuthorityKeyIdentifier.from_issuer_subject_key_identifier(ski)
    elif isinstance(issuer, x509.Certificate):
        issuer_name = issuer.subject
        aki = template.authority_key_identifier or authority_key_identifier_for(issuer)
    else:
        raise CertificateError(f"unsupported issuer: {type(issuer).__name__}")

    builder = (
        x509.CertificateBuilder()
        .subject_name(template.subject)
        .issuer_name(issuer_name)
        .public_key(public_key)
        .serial_number(template.serial_number)
        .not_valid_before(template.not_before)
        .not_valid_after(template.not_after)
        .add_extension(
            x509.BasicConstraints(
                ca=template.is_ca,
                path_length=template.max_path_len if template.is_ca else None,
            ),
            critical=True,
        )
    )
    if template.key_usage is not None:
        builder = builder.add_extension(template.key_usage, critical=True)
    if template.ext_key_usage:
        builder = builder.add_extension(x509.ExtendedKeyUsage(template.ext_key_usage), critical=False)
    builder = builder.add_extension(ski, critical=False)
    builder = builder.add_extension(aki, critical=False)
    for extension, critical in template.extensions:
        builder = builder.add_extension(extension, critical=critical)

    try:
        cert = builder.sign(signer, algorithm.hash_algorithm())
    except CertMakerError:
        raise
    except Exception as exc:
        raise CertificateError(f"signing certificate failed: {exc}") from exc

    _log.debug(
        "certificate.created",
        subject=cert.subject.rfc4514_string(),
        issuer=cert.issuer.rfc4514_string(),
        serial=format(cert.serial_number, "x"),
        algorithm=algorithm.name,
    )
    return cert


__all__ = [
    "CertificateTemplate",
    "Issuer",
    "authority_key_identifier_for",
    "create_certificate",
    "is_ca_certificate",
]
