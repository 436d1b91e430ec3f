#!/usr/bin/env python3
"""
Upload $ave+ API configuration from a .env file to AWS Parameter Store.

Run from the repository root:

    python -m scripts.upload_env_to_parameter_store --env-file .env --verify

Each known parameter is read from the variable the API itself falls back to
locally, e.g. ``/saveplus/plaid/secret`` from ``SAVEPLUS_PLAID_SECRET``.
API keys and secrets are stored as SecureString.
"""

import sys
from pathlib import Path
from typing import Dict

import boto3
import click
from botocore.exceptions import ClientError
from dotenv import dotenv_values

from services.parameter_store import (DEFAULT_PREFIX, KNOWN_PARAMETERS,
                                      parameter_env_var)


def load_env_file(env_file_path: str, parameter_prefix: str = DEFAULT_PREFIX) -> Dict[str, str]:
    """
    Collect known parameters that have a non-empty value in the .env file.

    Returns:
        Mapping of parameter key (without prefix) to value
    """
    if not Path(env_file_path).exists():
        click.secho(f"Error: {env_file_path} file not found", fg="red", err=True)
        sys.exit(1)

    values = dotenv_values(env_file_path)
    parameters = {}
    for key in KNOWN_PARAMETERS:
        value = values.get(parameter_env_var(f"{parameter_prefix}/{key}"))
        if value:
            parameters[key] = value
    return parameters


def mask(value: str) -> str:
    return value[:4] + "..." if len(value) > 8 else "***"


def upload_parameters(
    parameters: Dict[str, str],
    parameter_prefix: str = DEFAULT_PREFIX,
    dry_run: bool = False,
    ssm=None,
) -> int:
    """
    Upload parameters and return how many were written.

    Args:
        parameters: Parameter keys (without prefix) to values
        parameter_prefix: Prefix for parameter names
        dry_run: If True, only print what would be uploaded
    """
    if dry_run:
        click.secho("DRY RUN - would upload:", fg="blue")
        for key, value in parameters.items():
            secure = " (SecureString)" if KNOWN_PARAMETERS[key] else ""
            click.echo(f"  {parameter_prefix}/{key} = {mask(value)}{secure}")
        return 0

    ssm = ssm or boto3.client("ssm")
    uploaded = 0
    for key, value in parameters.items():
        full_name = f"{parameter_prefix}/{key}"
        try:
            response = ssm.put_parameter(
                Name=full_name,
                Value=value,
                Type="SecureString" if KNOWN_PARAMETERS[key] else "String",
                Description=f"$ave+ API setting: {key}",
                Overwrite=True,
            )
        except ClientError as e:
            click.secho(f"✗ Failed to upload {full_name}: {e}", fg="red", err=True)
            continue

        uploaded += 1
        click.secho(f"✓ Uploaded {full_name} (version {response['Version']})", fg="green")
    return uploaded


def verify_parameters(
    parameters: Dict[str, str], parameter_prefix: str = DEFAULT_PREFIX, ssm=None
) -> bool:
    """Check every parameter can be read back; return True if all exist."""
    click.secho("\nVerifying uploaded parameters...", fg="blue")
    ssm = ssm or boto3.client("ssm")

    ok = True
    for key in parameters:
        full_name = f"{parameter_prefix}/{key}"
        try:
            ssm.get_parameter(Name=full_name, WithDecryption=True)
            click.secho(f"✓ {full_name}", fg="green")
        except ClientError as e:
            ok = False
            if e.response["Error"]["Code"] == "ParameterNotFound":
                click.secho(f"✗ {full_name} not found", fg="red")
            else:
                click.secho(f"✗ Error checking {full_name}: {e}", fg="red")
    return ok


def missing_required(parameters: Dict[str, str]) -> list:
    required = ("plaid/client-id", "plaid/secret", "alpha-vantage/api-key", "llm/api-key")
    return [key for key in required if key not in parameters]


@click.command()
@click.option("--env-file", default=".env", help="Path to .env file", show_default=True)
@click.option("--prefix", default=DEFAULT_PREFIX, help="Parameter Store prefix", show_default=True)
@click.option("--dry-run", is_flag=True, help="Show what would be uploaded without uploading")
@click.option("--verify", is_flag=True, help="Verify parameters after upload")
def main(env_file: str, prefix: str, dry_run: bool, verify: bool):
    """Upload $ave+ settings from a .env file to AWS Parameter Store."""
    prefix = prefix.rstrip("/")
    parameters = load_env_file(env_file, prefix)

    if not parameters:
        click.secho("No known parameters found in the .env file", fg="red", err=True)
        click.echo("Expected variables such as " + parameter_env_var(f"{prefix}/plaid/client-id"))
        sys.exit(1)

    click.secho(f"Found {len(parameters)} parameters", fg="green")
    for key in missing_required(parameters):
        click.secho(f"Warning: {prefix}/{key} is required by the API but not set", fg="yellow")

    upload_parameters(parameters, prefix, dry_run)

    if dry_run:
        return

    if verify and not verify_parameters(parameters, prefix):
        sys.exit(1)

    click.secho("\nParameter upload complete", fg="green")


if __name__ == "__main__":
    main()
