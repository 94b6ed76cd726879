#!/usr/bin/env python3
"""
Credential Broker CLI

Resolves AWS credentials (default chain or assumed role with optional MFA)
and prints them for use by other tools.

Commands:
    resolve       Resolve credentials and print them
    cache-status  Show the state of the credential cache
    whoami        Resolve credentials and show the STS caller identity

Usage:
    credential-broker resolve --format env
    credential-broker resolve --format process
    credential-broker cache-status
    credential-broker whoami

Configuration is read from the environment (and a .env file):
AWS_REGION, ROLE_ARN, MFA_SERIAL, ROLE_SESSION_NAME, CREDENTIAL_CACHE_FILE.
"""

import json
import shlex
import sys
from datetime import datetime, timezone
from typing import Any, Dict

import click
import structlog
from botocore.exceptions import BotoCoreError, ClientError
from dotenv import find_dotenv, load_dotenv

from .cache import CredentialCache
from .config import DEFAULT_CACHE_FILE, load_request
from .errors import CredentialBrokerError, NetworkError
from .logging_config import configure_logging
from .models import CredentialSet
from .resolver import CredentialResolver
from .session import build_session
from .version import __version__

logger = structlog.get_logger(__name__)


def format_json(data: Any, pretty: bool = True) -> str:
    """Format data as JSON string"""
    if pretty:
        return json.dumps(data, indent=2, ensure_ascii=False)
    return json.dumps(data, ensure_ascii=False)


def handle_error(error: Exception, verbose: bool = False) -> None:
    """Print an error and exit with status 1"""
    if isinstance(error, CredentialBrokerError):
        click.echo(error.format(), err=True)
    else:
        click.echo(f"Error: {error}", err=True)
    if verbose:
        import traceback

        traceback.print_exc()
    sys.exit(1)


def _iso(value) -> Any:
    return value.isoformat() if value else None


def format_env(credentials: CredentialSet, region: str) -> str:
    """Render credentials as shell export statements"""
    values = {
        "AWS_ACCESS_KEY_ID": credentials.access_key_id,
        "AWS_SECRET_ACCESS_KEY": credentials.secret_access_key,
        "AWS_SESSION_TOKEN": credentials.session_token,
        "AWS_REGION": region,
    }
    lines = [f"export {key}={shlex.quote(value)}" for key, value in values.items() if value]
    if not credentials.session_token:
        lines.append("unset AWS_SESSION_TOKEN")
    return "\n".join(lines)


def format_process(credentials: CredentialSet) -> Dict[str, Any]:
    """Render credentials in the AWS credential_process output format"""
    output: Dict[str, Any] = {
        "Version": 1,
        "AccessKeyId": credentials.access_key_id,
        "SecretAccessKey": credentials.secret_access_key,
    }
    if credentials.session_token:
        output["SessionToken"] = credentials.session_token
    if credentials.expiration:
        output["Expiration"] = credentials.expiration.isoformat()
    return output


def format_details(credentials: CredentialSet, region: str) -> Dict[str, Any]:
    return {
        "access_key_id": credentials.access_key_id,
        "secret_access_key": credentials.secret_access_key,
        "session_token": credentials.session_token,
        "expiration": _iso(credentials.expiration),
        "source": credentials.source,
        "region": region,
    }


@click.group()
@click.version_option(version=__version__, prog_name="credential-broker")
@click.option("--verbose", "-v", is_flag=True, help="Verbose logging and error output")
@click.pass_context
def cli(ctx, verbose: bool):
    """
    AWS Credential Broker

    Resolves AWS credentials from the default provider chain, or by assuming
    ROLE_ARN (prompting for an MFA code when MFA_SERIAL is set). Assumed-role
    credentials are cached until they expire.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    load_dotenv(find_dotenv(usecwd=True))
    configure_logging("DEBUG" if verbose else None)


@cli.command()
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["env", "json", "process"], case_sensitive=False),
    default="env",
    help="Output format",
    show_default=True,
)
@click.pass_context
def resolve(ctx, output_format: str):
    """
    Resolve credentials and print them to stdout

    Examples:
        eval "$(credential-broker resolve)"
        credential-broker resolve --format json
        credential-broker resolve --format process
    """
    verbose = ctx.obj.get("verbose", False)
    try:
        request = load_request(load_env_file=False)
        credentials = CredentialResolver(request).resolve()
        logger.debug("Credentials resolved", source=credentials.source, output_format=output_format)

        output_format = output_format.lower()
        if output_format == "env":
            click.echo(format_env(credentials, request.region))
        elif output_format == "process":
            click.echo(format_json(format_process(credentials)))
        else:
            click.echo(format_json(format_details(credentials, request.region)))

    except Exception as e:
        handle_error(e, verbose)


@cli.command("cache-status")
@click.option(
    "--cache-file",
    envvar="CREDENTIAL_CACHE_FILE",
    default=DEFAULT_CACHE_FILE,
    type=click.Path(dir_okay=False),
    help="Credential cache file (env: CREDENTIAL_CACHE_FILE)",
    show_default=True,
)
@click.pass_context
def cache_status(ctx, cache_file: str):
    """
    Show whether the credential cache holds usable credentials

    Exits with status 1 when there is no usable cached record.
    """
    verbose = ctx.obj.get("verbose", False)
    try:
        cache = CredentialCache(cache_file)
        record = cache.read()

        if record is None:
            click.echo(f"✗ No usable credentials cached in {cache.path}", err=True)
            sys.exit(1)

        now = datetime.now(timezone.utc)
        if record.is_valid_at(now):
            remaining = int((record.expiration - now).total_seconds())
            click.echo(f"✓ Cached credentials valid until {record.expiration.isoformat()} ({remaining}s remaining)")
        else:
            click.echo(f"✗ Cached credentials expired at {record.expiration.isoformat()}", err=True)
            sys.exit(1)

    except Exception as e:
        handle_error(e, verbose)


@cli.command()
@click.pass_context
def whoami(ctx):
    """
    Resolve credentials and print the STS caller identity
    """
    verbose = ctx.obj.get("verbose", False)
    try:
        request = load_request(load_env_file=False)
        credentials = CredentialResolver(request).resolve()
        sts = build_session(credentials, request.region).client("sts")

        try:
            identity = sts.get_caller_identity()
        except ClientError as e:
            error = e.response.get("Error", {})
            raise NetworkError(
                f"GetCallerIdentity failed: {error.get('Message', str(e))}",
                code=error.get("Code", "Unknown"),
            ) from e
        except BotoCoreError as e:
            raise NetworkError(f"GetCallerIdentity failed: {e}", code=type(e).__name__) from e

        click.echo(
            format_json(
                {
                    "Account": identity.get("Account"),
                    "Arn": identity.get("Arn"),
                    "UserId": identity.get("UserId"),
                    "Source": credentials.source,
                }
            )
        )

    except Exception as e:
        handle_error(e, verbose)


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
