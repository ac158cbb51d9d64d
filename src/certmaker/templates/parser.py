"""Turn template source into a :class:`CertificateTemplate`."""
from __future__ import annotations

import base64
import binascii
import hashlib
from datetime import datetime, timezone
from typing import Dict, List, Optional

import yaml
from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.types import PublicKeyTypes
from cryptography.x509.oid import ExtendedKeyUsageOID, ExtensionOID, NameOID, ObjectIdentifier
from pydantic import ValidationError

from ..certificates.builder import CertificateTemplate, authority_key_identifier_for, is_ca_certificate
from ..exceptions import TemplateError
from .schema import SubjectTemplate, TemplateDocument
from .sources import TemplateSource, template_content

_KEY_USAGES = {
    "digitalsignature": "digital_signature",
    "contentcommitment": "content_commitment",
    "nonrepudiation": "content_commitment",
    "keyencipherment": "key_encipherment",
    "dataencipherment": "data_encipherment",
    "keyagreement": "key_agreement",
    "certsign": "key_cert_sign",
    "crlsign": "crl_sign",
    "encipheronly": "encipher_only",
    "decipheronly": "decipher_only",
}

_EXT_KEY_USAGES: Dict[str, ObjectIdentifier] = {
    "codesigning": ExtendedKeyUsageOID.CODE_SIGNING,
    "serverauth": ExtendedKeyUsageOID.SERVER_AUTH,
    "clientauth": ExtendedKeyUsageOID.CLIENT_AUTH,
    "emailprotection": ExtendedKeyUsageOID.EMAIL_PROTECTION,
    "timestamping": ExtendedKeyUsageOID.TIME_STAMPING,
    "ocspsigning": ExtendedKeyUsageOID.OCSP_SIGNING,
}

# Extensions the builder always sets itself.
_MANAGED_EXTENSIONS = {
    ExtensionOID.BASIC_CONSTRAINTS,
    ExtensionOID.KEY_USAGE,
    ExtensionOID.EXTENDED_KEY_USAGE,
    ExtensionOID.SUBJECT_KEY_IDENTIFIER,
    ExtensionOID.AUTHORITY_KEY_IDENTIFIER,
}


def parse_template(
    source: TemplateSource | str,
    parent: Optional[x509.Certificate],
    not_after: datetime,
    public_key: PublicKeyTypes,
    common_name: str,
    *,
    not_before: Optional[datetime] = None,
) -> CertificateTemplate:
    """Build a certificate template for ``public_key``.

    ``source`` is JSON or YAML text (or a :class:`TemplateSource`). A
    non-empty ``common_name`` replaces the template's subject CN. ``parent``
    is ``None`` for a self-signed root. ``not_before`` defaults to the
    template's ``notBefore`` and then to the current time.
    """

    text = source if isinstance(source, str) else template_content(source)
    document = _load_document(text)

    subject_fields = document.subject
    if common_name:
        subject_fields = subject_fields.model_copy(update={"common_name": common_name})
    if not subject_fields.common_name:
        raise TemplateError("template subject.commonName cannot be empty")

    start = _as_utc(document.not_before or not_before or datetime.now(timezone.utc))
    end = _as_utc(not_after)
    if end <= start:
        raise TemplateError("notAfter time must be after notBefore time")

    constraints = document.basic_constraints
    key_usage = _key_usage(document.key_usage)
    _validate_role(constraints.is_ca, key_usage, parent)

    subject = _subject_name(subject_fields)
    serial = document.serial_number or derive_serial_number(subject, public_key, start, end, parent)

    return CertificateTemplate(
        subject=subject,
        public_key=public_key,
        serial_number=serial,
        not_before=start,
        not_after=end,
        is_ca=constraints.is_ca,
        max_path_len=constraints.max_path_len,
        key_usage=key_usage,
        ext_key_usage=[_ext_key_usage(name) for name in document.ext_key_usage],
        extensions=_extra_extensions(document),
        authority_key_identifier=authority_key_identifier_for(parent) if parent is not None else None,
    )


def derive_serial_number(
    subject: x509.Name,
    public_key: PublicKeyTypes,
    not_before: datetime,
    not_after: datetime,
    parent: Optional[x509.Certificate],
) -> int:
    """Serial number derived from the certificate contents.

    Reissuing with identical inputs yields the same serial, which keeps the
    DER output reproducible apart from the signature.
    """

    digest = hashlib.sha256()
    digest.update(subject.public_bytes())
    digest.update(
        public_key.public_bytes(
            serialization.Encoding.DER, serialization.PublicFormat.SubjectPublicKeyInfo
        )
    )
    digest.update(not_before.isoformat().encode("ascii"))
    digest.update(not_after.isoformat().encode("ascii"))
    if parent is not None:
        digest.update(parent.tbs_certificate_bytes)
    return int.from_bytes(digest.digest()[:19], "big") or 1


def _load_document(text: str) -> TemplateDocument:
    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise TemplateError(f"template is not valid JSON or YAML: {exc}") from exc
    if not isinstance(raw, dict):
        raise TemplateError("template must be a mapping")
    try:
        return TemplateDocument.model_validate(raw)
    except ValidationError as exc:
        raise TemplateError(f"invalid template: {exc}") from exc


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _subject_name(fields: SubjectTemplate) -> x509.Name:
    attributes: List[x509.NameAttribute] = []
    for oid, values in (
        (NameOID.COUNTRY_NAME, fields.country),
        (NameOID.STATE_OR_PROVINCE_NAME, fields.province),
        (NameOID.LOCALITY_NAME, fields.locality),
        (NameOID.ORGANIZATION_NAME, fields.organization),
        (NameOID.ORGANIZATIONAL_UNIT_NAME, fields.organizational_unit),
    ):
        attributes.extend(x509.NameAttribute(oid, value) for value in values)
    attributes.append(x509.NameAttribute(NameOID.COMMON_NAME, fields.common_name))
    try:
        return x509.Name(attributes)
    except ValueError as exc:
        raise TemplateError(f"invalid template subject: {exc}") from exc


def _key_usage(names: List[str]) -> Optional[x509.KeyUsage]:
    if not names:
        return None
    flags = {field: False for field in set(_KEY_USAGES.values())}
    for name in names:
        field = _KEY_USAGES.get(name.replace("_", "").lower())
        if field is None:
            raise TemplateError(f"unknown key usage: {name}")
        flags[field] = True
    if (flags["encipher_only"] or flags["decipher_only"]) and not flags["key_agreement"]:
        raise TemplateError("encipherOnly and decipherOnly require keyAgreement")
    return x509.KeyUsage(**flags)


def _ext_key_usage(name: str) -> ObjectIdentifier:
    oid = _EXT_KEY_USAGES.get(name.replace("_", "").lower())
    if oid is not None:
        return oid
    try:
        return ObjectIdentifier(name)
    except ValueError as exc:
        raise TemplateError(f"unknown extended key usage: {name}") from exc


def _extra_extensions(document: TemplateDocument) -> List[tuple[x509.ExtensionType, bool]]:
    extensions: List[tuple[x509.ExtensionType, bool]] = []
    for entry in document.extensions:
        try:
            oid = ObjectIdentifier(entry.id)
        except ValueError as exc:
            raise TemplateError(f"invalid extension id: {entry.id}") from exc
        if oid in _MANAGED_EXTENSIONS:
            raise TemplateError(f"extension {entry.id} is set from the template fields and cannot be overridden")
        try:
            value = base64.b64decode(entry.value, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise TemplateError(f"extension {entry.id} value is not valid base64") from exc
        extensions.append((x509.UnrecognizedExtension(oid, value), entry.critical))
    return extensions


def _has(key_usage: Optional[x509.KeyUsage], attribute: str) -> bool:
    return key_usage is not None and getattr(key_usage, attribute)


def _validate_role(is_ca: bool, key_usage: Optional[x509.KeyUsage], parent: Optional[x509.Certificate]) -> None:
    if parent is None:
        if not is_ca:
            raise TemplateError("root certificate must be a CA")
        if not _has(key_usage, "key_cert_sign"):
            raise TemplateError("root certificate must have certSign key usage")
        return

    if not is_ca_certificate(parent):
        raise TemplateError("parent certificate must be a CA")
    if is_ca:
        if not _has(key_usage, "key_cert_sign"):
            raise TemplateError("intermediate certificate must have certSign key usage")
        parent_constraints = parent.extensions.get_extension_for_class(x509.BasicConstraints).value
        if parent_constraints.path_length == 0:
            raise TemplateError("parent certificate does not allow subordinate CAs (maxPathLen 0)")
    elif not _has(key_usage, "digital_signature"):
        raise TemplateError("leaf certificate must have digitalSignature key usage")


__all__ = ["derive_serial_number", "parse_template"]
