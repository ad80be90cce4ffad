"""
Secrets bootstrap for Lambda.

Fetches credentials from Secrets Manager into the environment before
settings are read.
"""

import json
import logging
import os
from urllib.parse import quote_plus

import boto3
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)

PLACEHOLDER_API_KEY = "PLACEHOLDER_SET_VIA_CLI"


def configure_secrets(client=None) -> None:
    """
    Fetch access secrets from Secrets Manager and update environment.

    1. Replaces 'placeholder' in DATABASE_URL with the password from DB_SECRET_ARN.
    2. Sets GEMINI_API_KEY from the api_key in SECRETS_ARN.

    Failures are logged; the handler then runs with whatever is configured.

    Args:
        client: secretsmanager client (defaults to a new boto3 client)
    """
    db_url = os.getenv("DATABASE_URL", "")
    db_secret_arn = os.getenv("DB_SECRET_ARN")
    gemini_secret_arn = os.getenv("SECRETS_ARN")
    if not (gemini_secret_arn or (db_secret_arn and "placeholder" in db_url)):
        return

    if client is None:
        client = boto3.session.Session().client("secretsmanager")

    # 1. Database password
    if "placeholder" in db_url and db_secret_arn:
        try:
            secret = _read_secret(client, db_secret_arn)
            password = secret.get("password")
            if password:
                os.environ["DATABASE_URL"] = db_url.replace("placeholder", quote_plus(password))
                logger.info("configure_secrets - Updated DATABASE_URL with secret")
        except (BotoCoreError, ClientError, ValueError) as e:
            logger.error("configure_secrets - Failed to fetch DB secret: %s", e)

    # 2. Gemini API key
    if gemini_secret_arn:
        try:
            secret = _read_secret(client, gemini_secret_arn)
            api_key = secret.get("api_key")
            if api_key and api_key != PLACEHOLDER_API_KEY:
                os.environ["GEMINI_API_KEY"] = api_key
                logger.info("configure_secrets - Set GEMINI_API_KEY from secret")
            else:
                logger.warning("configure_secrets - Gemini API key is missing or placeholder")
        except (BotoCoreError, ClientError, ValueError) as e:
            logger.error("configure_secrets - Failed to fetch Gemini API key: %s", e)


def _read_secret(client, secret_id: str) -> dict:
    response = client.get_secret_value(SecretId=secret_id)
    if "SecretString" not in response:
        return {}
    return json.loads(response["SecretString"])
