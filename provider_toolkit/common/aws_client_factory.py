"""
AWS Client Factory Module
Provides standardized boto3 client creation for the services the provider manages.
"""

import logging
import os
from pathlib import Path
from typing import Optional

import boto3
from dotenv import load_dotenv

# Service names the resource modules ask for
SERVICECATALOG = "servicecatalog"
SAGEMAKER = "sagemaker"
DYNAMODB = "dynamodb"
REDSHIFT = "redshift"
ELBV2 = "elbv2"
ROUTE53 = "route53"
SES = "ses"
XRAY = "xray"
CLOUDCONTROL = "cloudcontrol"
EC2 = "ec2"

# Propagation budget key for IAM principals and certificates used by other services
IAM = "iam"

# Services without regional endpoints
GLOBAL_SERVICES = frozenset({ROUTE53})


def resolve_env_path(env_path: Optional[str] = None) -> str:
    """
    Determine which .env file should be used for credentials and settings.

    Priority order:
      1. Explicit parameter
      2. AWS_ENV_FILE environment variable
      3. ~/.env
    """
    if env_path:
        return env_path
    aws_env_file = os.environ.get("AWS_ENV_FILE")
    if aws_env_file:
        return aws_env_file
    return str(Path.home() / ".env")


def load_credentials_from_env(env_path: Optional[str] = None) -> tuple[str, str, Optional[str]]:
    """
    Load AWS credentials from a .env file.

    Args:
        env_path: Optional override path (defaults to ~/.env)

    Returns:
        tuple: (aws_access_key_id, aws_secret_access_key, aws_session_token or None)

    Raises:
        ValueError: If credentials are not found
    """
    resolved_path = resolve_env_path(env_path)
    load_dotenv(resolved_path)

    aws_access_key_id = os.getenv("AWS_ACCESS_KEY_ID")
    aws_secret_access_key = os.getenv("AWS_SECRET_ACCESS_KEY")
    if aws_access_key_id and aws_secret_access_key:
        logging.debug("AWS credentials loaded from %s", resolved_path)
        return aws_access_key_id, aws_secret_access_key, os.getenv("AWS_SESSION_TOKEN")

    raise ValueError(f"AWS credentials not found in {resolved_path}")


def create_client(
    service_name: str,
    region: Optional[str] = None,
    aws_access_key_id: Optional[str] = None,
    aws_secret_access_key: Optional[str] = None,
    aws_session_token: Optional[str] = None,
):
    """
    Create a boto3 client for any AWS service with credentials.

    Args:
        service_name: AWS service name (e.g., 'servicecatalog', 'sagemaker')
        region: AWS region name, ignored for global services
        aws_access_key_id: Optional AWS access key (loads from env if not provided)
        aws_secret_access_key: Optional AWS secret key (loads from env if not provided)
        aws_session_token: Optional session token

    Returns:
        boto3.client: Configured AWS service client
    """
    if aws_access_key_id is None or aws_secret_access_key is None:
        aws_access_key_id, aws_secret_access_key, env_session_token = load_credentials_from_env()
        if aws_session_token is None:
            aws_session_token = env_session_token

    client_kwargs = {
        "aws_access_key_id": aws_access_key_id,
        "aws_secret_access_key": aws_secret_access_key,
    }

    if aws_session_token:
        client_kwargs["aws_session_token"] = aws_session_token

    if region is not None and service_name not in GLOBAL_SERVICES:
        client_kwargs["region_name"] = region

    return boto3.client(service_name, **client_kwargs)
