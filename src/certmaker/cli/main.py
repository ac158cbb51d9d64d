"""Typer-based command line interface for certmaker."""
from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from ..chain import create_certificates
from ..config import AppConfig, load_config, parse_duration
from ..exceptions import CertMakerError
from ..kms import init_kms
from ..logging import configure_logging
from ..models import KMSConfig, ProviderType

app = typer.Typer(help="Create KMS-backed certificate chains")


@app.callback()
def main(ctx: typer.Context, config: Optional[Path] = typer.Option(None, "--config", metavar="PATH")) -> None:
    try:
        ctx.obj = load_config(config)
    except ValueError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=2) from exc
    configure_logging(ctx.obj.logging.normalized_level())


def _duration(value: Optional[str], fallback: str, flag: str):
    try:
        return parse_duration(value or fallback)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint=flag) from exc


@app.command()
def create(
    ctx: typer.Context,
    kms_type: str = typer.Option(
        ..., "--kms-type", envvar="KMS_TYPE", help="KMS provider: awskms|gcpkms|azurekms|hashivault"
    ),
    common_name: str = typer.Option(..., "--common-name", envvar="CERT_COMMON_NAME", help="Certificate subject CN"),
    root_key_id: str = typer.Option(..., "--root-key-id", envvar="KMS_ROOT_KEY_ID", help="KMS key for the root"),
    leaf_key_id: str = typer.Option(..., "--leaf-key-id", envvar="KMS_LEAF_KEY_ID", help="KMS key for the leaf"),
    intermediate_key_id: str = typer.Option(
        "", "--intermediate-key-id", envvar="KMS_INTERMEDIATE_KEY_ID", help="KMS key for an optional intermediate"
    ),
    aws_region: str = typer.Option("", "--aws-region", envvar="AWS_REGION", help="AWS region (awskms)"),
    gcp_credentials_file: str = typer.Option(
        "", "--gcp-credentials-file", envvar="GCP_CREDENTIALS_FILE", help="Service account JSON (gcpkms)"
    ),
    azure_tenant_id: str = typer.Option("", "--azure-tenant-id", envvar="AZURE_TENANT_ID", help="Tenant (azurekms)"),
    vault_token: str = typer.Option(
        "", "--vault-token", envvar="VAULT_TOKEN", help="Vault token (hashivault)", show_default=False
    ),
    vault_address: str = typer.Option("", "--vault-address", envvar="VAULT_ADDR", help="Vault address (hashivault)"),
    root_template: Optional[Path] = typer.Option(None, "--root-template", help="Root template (JSON or YAML)"),
    intermediate_template: Optional[Path] = typer.Option(None, "--intermediate-template"),
    leaf_template: Optional[Path] = typer.Option(None, "--leaf-template"),
    root_cert: Optional[Path] = typer.Option(None, "--root-cert", help="Output path for the root certificate"),
    intermediate_cert: Optional[Path] = typer.Option(None, "--intermediate-cert"),
    leaf_cert: Optional[Path] = typer.Option(None, "--leaf-cert"),
    root_lifetime: Optional[str] = typer.Option(None, "--root-lifetime", help="e.g. 87600h"),
    intermediate_lifetime: Optional[str] = typer.Option(None, "--intermediate-lifetime", help="e.g. 43800h"),
    leaf_lifetime: Optional[str] = typer.Option(None, "--leaf-lifetime", help="e.g. 8760h"),
) -> None:
    """Create root, optional intermediate, and leaf certificates."""
    app_config: AppConfig = ctx.obj or load_config()
    options = {
        "aws-region": aws_region,
        "gcp-credentials-file": gcp_credentials_file,
        "azure-tenant-id": azure_tenant_id,
        "vault-token": vault_token,
        "vault-address": vault_address,
    }
    config = KMSConfig(
        common_name=common_name,
        type=kms_type,
        root_key_id=root_key_id,
        intermediate_key_id=intermediate_key_id,
        leaf_key_id=leaf_key_id,
        options={name: value for name, value in options.items() if value},
    )
    lifetimes = app_config.lifetimes
    outputs = app_config.outputs
    root_ttl = _duration(root_lifetime, lifetimes.root, "--root-lifetime")
    intermediate_ttl = _duration(intermediate_lifetime, lifetimes.intermediate, "--intermediate-lifetime")
    leaf_ttl = _duration(leaf_lifetime, lifetimes.leaf, "--leaf-lifetime")

    try:
        signer = init_kms(config)
        create_certificates(
            signer,
            config,
            root_template_path=root_template,
            leaf_template_path=leaf_template,
            root_cert_path=root_cert or outputs.root_cert,
            leaf_cert_path=leaf_cert or outputs.leaf_cert,
            intermediate_key_id=intermediate_key_id,
            intermediate_template_path=intermediate_template,
            intermediate_cert_path=intermediate_cert or outputs.intermediate_cert,
            root_lifetime=root_ttl,
            intermediate_lifetime=intermediate_ttl,
            leaf_lifetime=leaf_ttl,
        )
    except CertMakerError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc


@app.command()
def providers() -> None:
    """List the supported KMS types."""
    for provider in ProviderType:
        typer.echo(provider.value)


@app.command()
def version() -> None:
    from ..version import __version__

    typer.echo(__version__)


if __name__ == "__main__":  # pragma: no cover
    app()
