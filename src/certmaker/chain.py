"""Build a root, optional intermediate, and leaf certificate with KMS-held keys.

Stages run strictly in order because each certificate is issued by the one
before it. Files written by earlier stages are left in place when a later
stage fails; callers decide how to clean up a partial chain.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Optional, Tuple

import structlog
from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric.types import (
    CertificateIssuerPrivateKeyTypes,
    PublicKeyTypes,
)

from .certificates.builder import CertificateTemplate, Issuer, create_certificate
from .certificates.signature import to_signature_algorithm
from .certificates.writer import write_certificate_to_file
from .exceptions import CapabilityError, CertMakerError, ChainBuildError, ConfigurationError
from .kms.base import KMSSigner
from .kms.gateway import init_kms
from .kms.registry import ProviderRegistry
from .models import CertificateChain, KMSConfig, Stage
from .templates import parse_template, resolve_template_source

Clock = Callable[[], datetime]

DIGEST = hashes.SHA256()

_log = structlog.get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _fail(stage: Stage, message: str, exc: BaseException) -> ChainBuildError:
    return ChainBuildError(f"{message}: {exc}", stage=stage.value)


def _public_key(signer: Any, stage: Stage) -> PublicKeyTypes:
    if not isinstance(signer, KMSSigner):
        prefix = "signer" if stage is Stage.ROOT else f"{stage.value} signer"
        raise ChainBuildError(f"{prefix} does not implement CryptoSigner", stage=stage.value) from CapabilityError(
            f"{type(signer).__name__} is not a KMS signer"
        )
    try:
        return signer.public_key()
    except CertMakerError as exc:
        raise _fail(stage, f"error getting {stage.value} public key", exc) from exc


def _capabilities(signer: Any, stage: Stage) -> Tuple[PublicKeyTypes, CertificateIssuerPrivateKeyTypes]:
    public_key = _public_key(signer, stage)
    try:
        crypto_signer = signer.crypto_signer()
    except CertMakerError as exc:
        raise _fail(stage, f"error getting {stage.value} crypto signer", exc) from exc
    return public_key, crypto_signer


def _stage_signer(config: KMSConfig, key_id: str, stage: Stage, registry: Optional[ProviderRegistry]) -> KMSSigner:
    try:
        return init_kms(config.with_active_key(key_id), registry=registry)
    except CertMakerError as exc:
        raise _fail(stage, f"error initializing {stage.value} KMS", exc) from exc


def _template(
    stage: Stage,
    template_path: Path | str | None,
    parent: Optional[x509.Certificate],
    not_before: datetime,
    lifetime: timedelta,
    public_key: PublicKeyTypes,
    common_name: str,
) -> CertificateTemplate:
    try:
        source = resolve_template_source(stage, template_path)
    except CertMakerError as exc:
        raise ChainBuildError(str(exc), stage=stage.value) from exc
    try:
        return parse_template(
            source,
            parent,
            not_before + lifetime,
            public_key,
            common_name,
            not_before=not_before,
        )
    except CertMakerError as exc:
        raise _fail(stage, f"error parsing {stage.value} template", exc) from exc


def _issue(
    stage: Stage,
    template: CertificateTemplate,
    issuer: Issuer,
    public_key: PublicKeyTypes,
    signing_key: CertificateIssuerPrivateKeyTypes,
    cert_path: Path | str,
) -> x509.Certificate:
    """Set the template's algorithm from ``signing_key``, sign, and write.

    ``signing_key`` is the issuer's key, so an intermediate carries the
    algorithm of the root key that signed it rather than its own.
    """
    try:
        template.signature_algorithm = to_signature_algorithm(signing_key, DIGEST)
    except CertMakerError as exc:
        raise _fail(stage, "error determining signature algorithm", exc) from exc
    try:
        cert = create_certificate(template, issuer, public_key, signing_key)
    except CertMakerError as exc:
        raise _fail(stage, f"error creating {stage.value} certificate", exc) from exc
    try:
        write_certificate_to_file(cert, cert_path)
    except CertMakerError as exc:
        raise _fail(stage, f"error writing {stage.value} certificate", exc) from exc
    return cert


def create_certificates(
    signer: KMSSigner,
    config: KMSConfig,
    *,
    root_cert_path: Path | str,
    leaf_cert_path: Path | str,
    root_template_path: Path | str | None = None,
    leaf_template_path: Path | str | None = None,
    intermediate_key_id: str = "",
    intermediate_template_path: Path | str | None = None,
    intermediate_cert_path: Path | str | None = None,
    root_lifetime: timedelta,
    intermediate_lifetime: timedelta,
    leaf_lifetime: timedelta,
    clock: Optional[Clock] = None,
    registry: Optional[ProviderRegistry] = None,
) -> CertificateChain:
    """Issue root, intermediate (when ``intermediate_key_id`` is set) and leaf.

    ``signer`` is bound to the root key. Intermediate and leaf signers are
    created through the gateway with ``config`` copied and its active key
    replaced. The intermediate is signed by the root key; the leaf is signed
    by the intermediate key when there is one, otherwise by the root key.
    """

    if intermediate_key_id and not intermediate_cert_path:
        raise ConfigurationError("intermediate certificate path is required when an intermediate key is set")
    now = (clock or _utcnow)()

    _log.info("chain.stage", stage=Stage.ROOT.value)
    root_public_key, root_signer = _capabilities(signer, Stage.ROOT)
    root_template = _template(
        Stage.ROOT, root_template_path, None, now, root_lifetime, root_public_key, config.common_name
    )
    root_cert = _issue(Stage.ROOT, root_template, root_template, root_public_key, root_signer, root_cert_path)

    intermediate_cert: Optional[x509.Certificate] = None
    signing_cert = root_cert
    signing_key = root_signer

    if intermediate_key_id:
        _log.info("chain.stage", stage=Stage.INTERMEDIATE.value)
        intermediate_sv = _stage_signer(config, intermediate_key_id, Stage.INTERMEDIATE, registry)
        intermediate_public_key, intermediate_signer = _capabilities(intermediate_sv, Stage.INTERMEDIATE)
        intermediate_template = _template(
            Stage.INTERMEDIATE,
            intermediate_template_path,
            root_cert,
            now,
            intermediate_lifetime,
            intermediate_public_key,
            config.common_name,
        )
        intermediate_cert = _issue(
            Stage.INTERMEDIATE,
            intermediate_template,
            root_cert,
            intermediate_public_key,
            root_signer,
            intermediate_cert_path,
        )
        signing_cert = intermediate_cert
        signing_key = intermediate_signer

    _log.info("chain.stage", stage=Stage.LEAF.value)
    leaf_sv = _stage_signer(config, config.leaf_key_id, Stage.LEAF, registry)
    leaf_public_key = _public_key(leaf_sv, Stage.LEAF)
    leaf_template = _template(
        Stage.LEAF, leaf_template_path, signing_cert, now, leaf_lifetime, leaf_public_key, config.common_name
    )
    leaf_cert = _issue(Stage.LEAF, leaf_template, signing_cert, leaf_public_key, signing_key, leaf_cert_path)

    _log.info("chain.complete", intermediate=intermediate_cert is not None)
    return CertificateChain(root=root_cert, intermediate=intermediate_cert, leaf=leaf_cert)


__all__ = ["Clock", "create_certificates"]
