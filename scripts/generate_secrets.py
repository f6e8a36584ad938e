#!/usr/bin/env python3
# Campeiro - Photo Marketplace API
# Copyright (c) 2026 George Scott Foley
# ORCID: 0009-0006-4957-0540
# Email: Georgescottfoley@proton.me
# Licensed under the MIT License - see LICENSE file for details

"""
Security Key Generator

Generates the two independent token signing secrets:
- SECURITY_JWT_ACCESS_SECRET  (access tokens)
- SECURITY_JWT_REFRESH_SECRET (refresh tokens)

Usage:
    python scripts/generate_secrets.py
    python scripts/generate_secrets.py --env  # Output as .env format
    python scripts/generate_secrets.py --json # Output as JSON
"""

import argparse
import json
import secrets
import sys


def generate_secret(length: int = 64) -> str:
    """Generate a URL-safe signing secret."""
    return secrets.token_urlsafe(length)


def generate_all_secrets() -> dict:
    access = generate_secret()
    refresh = generate_secret()
    # Settings reject identical secrets
    while refresh == access:
        refresh = generate_secret()
    return {
        "SECURITY_JWT_ACCESS_SECRET": access,
        "SECURITY_JWT_REFRESH_SECRET": refresh,
    }


def format_env(secrets_dict: dict) -> str:
    """Format secrets as .env file content."""
    lines = [
        "# Campeiro Security Configuration",
        "# Generated with scripts/generate_secrets.py",
        "# KEEP THESE VALUES SECRET - DO NOT COMMIT TO VERSION CONTROL",
        "",
    ]
    lines.extend(f"{key}={value}" for key, value in secrets_dict.items())
    return "\n".join(lines)


def format_json(secrets_dict: dict) -> str:
    return json.dumps(secrets_dict, indent=2)


def format_plain(secrets_dict: dict) -> str:
    """Format secrets as plain text with descriptions."""
    descriptions = {
        "SECURITY_JWT_ACCESS_SECRET": "Signs short-lived access tokens",
        "SECURITY_JWT_REFRESH_SECRET": "Signs refresh tokens (must differ from the access secret)",
    }

    output = [
        "=" * 60,
        "CAMPEIRO SECURITY KEYS",
        "=" * 60,
        "",
        "Keep these values secret. Do not commit to version control.",
        "",
        "-" * 60,
    ]
    for key, value in secrets_dict.items():
        output.extend(["", key, f"   {descriptions.get(key, '')}", f"   Value: {value}"])
    output.extend(["", "-" * 60])
    return "\n".join(output)


def main():
    parser = argparse.ArgumentParser(description="Generate secure keys for Campeiro")
    parser.add_argument("--env", action="store_true", help="Output in .env file format")
    parser.add_argument("--json", action="store_true", help="Output in JSON format")
    parser.add_argument("--output", "-o", type=str, help="Write output to file")

    args = parser.parse_args()

    secrets_dict = generate_all_secrets()

    if args.env:
        output = format_env(secrets_dict)
    elif args.json:
        output = format_json(secrets_dict)
    else:
        output = format_plain(secrets_dict)

    if args.output:
        with open(args.output, "w") as f:
            f.write(output)
        print(f"Secrets written to {args.output}")
    else:
        print(output)

    return 0


if __name__ == "__main__":
    sys.exit(main())
