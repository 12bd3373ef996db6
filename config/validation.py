# config/validation.py

"""
Environment variable validation for the membership ledger.
Validates required environment variables at startup.
"""

import os
import sys
from typing import List, Tuple

_WEBHOOK_SECRETS = (
    ("WC_NEWMEMBER_HMAC", "Webconnex new-member webhook"),
    ("WC_RECURRINGSUCCESS_HMAC", "Webconnex payment-success webhook"),
    ("DONORBOX_HMAC", "Donorbox new-donation webhook"),
)


def validate_environment(flask_env: str = None) -> Tuple[bool, List[str]]:
    """
    Validate required environment variables.

    Args:
        flask_env: Flask environment (development, production, testing)
                  If None, reads from FLASK_ENV environment variable

    Returns:
        Tuple of (is_valid, list_of_errors)
    """
    if flask_env is None:
        flask_env = os.environ.get("FLASK_ENV", "development")

    errors = []

    # Only validate in production
    if flask_env != "production":
        return True, []

    secret_key = os.environ.get("SECRET_KEY", "")
    if not secret_key or secret_key == "your-secret-key" or secret_key == "your_secret_key":
        errors.append(
            "SECRET_KEY is required in production and must not be the default value. "
            'Generate a secure key: python -c "import secrets; print(secrets.token_hex(32))"'
        )

    database_url = os.environ.get("DATABASE_URL")
    if not database_url:
        errors.append(
            "DATABASE_URL is required in production. "
            "Set it to your PostgreSQL connection string."
        )

    for env_name, label in _WEBHOOK_SECRETS:
        if not os.environ.get(env_name):
            errors.append(f"{env_name} is required in production ({label} signing secret).")

    if not os.environ.get("DONORBOX_CAMPAIGN_ID"):
        errors.append("DONORBOX_CAMPAIGN_ID is required in production to filter Donorbox donations.")

    if os.environ.get("ENABLE_WELCOME_EMAILS", "true").lower() == "true":
        if not os.environ.get("MAIL_SERVER"):
            errors.append("MAIL_SERVER is required when ENABLE_WELCOME_EMAILS=true")
        if not os.environ.get("MAIL_USERNAME"):
            errors.append("MAIL_USERNAME is required when ENABLE_WELCOME_EMAILS=true")
        if not os.environ.get("MAIL_PASSWORD"):
            errors.append("MAIL_PASSWORD is required when ENABLE_WELCOME_EMAILS=true")
        if not os.environ.get("DISCORD_BOT_TOKEN"):
            errors.append("DISCORD_BOT_TOKEN is required when ENABLE_WELCOME_EMAILS=true")
        if not os.environ.get("DISCORD_INVITE_CHANNEL_ID"):
            errors.append("DISCORD_INVITE_CHANNEL_ID is required when ENABLE_WELCOME_EMAILS=true")
        if not os.environ.get("PUBLIC_BASE_URL"):
            errors.append("PUBLIC_BASE_URL is required when ENABLE_WELCOME_EMAILS=true (links in welcome e-mails)")

    is_valid = len(errors) == 0
    return is_valid, errors


def validate_and_exit(flask_env: str = None) -> None:
    """
    Validate environment variables and exit with error if validation fails.
    Intended to be called at application startup.

    Args:
        flask_env: Flask environment (development, production, testing)
    """
    is_valid, errors = validate_environment(flask_env)

    if not is_valid:
        print("=" * 80, file=sys.stderr)
        print("ENVIRONMENT VALIDATION FAILED", file=sys.stderr)
        print("=" * 80, file=sys.stderr)
        print("\nThe following environment variables are missing or invalid:\n", file=sys.stderr)

        for i, error in enumerate(errors, 1):
            print(f"{i}. {error}", file=sys.stderr)

        print("\n" + "=" * 80, file=sys.stderr)
        print("Please check your .env file or environment variables.", file=sys.stderr)
        print("=" * 80, file=sys.stderr)

        sys.exit(1)
