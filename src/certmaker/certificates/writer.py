"""Persist certificates as PEM and report their role in the chain."""
from __future__ import annotations

from pathlib import Path
from typing import Optional

import structlog
import typer
from cryptography import x509
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization

from ..exceptions import CertificateWriteError
from ..models import Stage
from .builder import is_ca_certificate

_log = structlog.get_logger(__name__)


def is_self_signed(cert: x509.Certificate) -> bool:
    try:
        cert.verify_directly_issued_by(cert)
    except (InvalidSignature, ValueError, TypeError):
        return False
    return True


def classify_certificate(cert: x509.Certificate) -> Stage:
    """Root if a self-verifying CA, intermediate if any other CA, otherwise leaf."""

    if is_ca_certificate(cert):
        return Stage.ROOT if is_self_signed(cert) else Stage.INTERMEDIATE
    return Stage.LEAF


def write_certificate_to_file(cert: Optional[x509.Certificate], path: Path | str) -> Stage:
    if cert is None:
        raise CertificateWriteError("certificate is nil")
    if not cert.public_bytes(serialization.Encoding.DER):
        raise CertificateWriteError("certificate has no raw data")

    role = classify_certificate(cert)
    target = Path(path)
    try:
        target.write_bytes(cert.public_bytes(serialization.Encoding.PEM))
    except OSError as exc:
        raise CertificateWriteError(f"cannot write {role.value} certificate to {target}: {exc}") from exc

    _log.info("certificate.saved", role=role.value, path=str(target))
    typer.echo(f"Saved {role.value} cert to {target}")
    return role


__all__ = ["classify_certificate", "is_self_signed", "write_certificate_to_file"]
