#!/usr/bin/env python3
"""Sign image URLs with a private key."""

from __future__ import annotations

import argparse
import os
import sys

from services.image_server.core.access_token import strip_argument
from services.image_server.core.exceptions import ConfigurationError
from services.image_server.core.signature import GENERATORS


def sign_url(
    url: str, private_key: str, argument_key: str = "accessToken", algorithm: str = "sha256"
) -> str:
    """Return ``url`` with its access token appended."""
    generator_class = GENERATORS.get(algorithm)
    if generator_class is None:
        raise ConfigurationError(f"Unknown algorithm: {algorithm}")

    generator = generator_class(argument_keys=[argument_key])
    unsigned = strip_argument(url, argument_key)
    token = generator.generate_signature(argument_key, unsigned, private_key)

    separator = "&" if "?" in unsigned else "?"
    return f"{unsigned}{separator}{argument_key}={token}"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Append an access token to an image URL",
    )
    parser.add_argument("url", help="Absolute URL to sign")
    parser.add_argument(
        "--private-key",
        default=os.environ.get("IMAGE_SERVER_PRIVATE_KEY"),
        help="Private key (default: $IMAGE_SERVER_PRIVATE_KEY)",
    )
    parser.add_argument(
        "--argument",
        default="accessToken",
        help="Query argument carrying the token",
    )
    parser.add_argument(
        "--algorithm",
        default="sha256",
        choices=sorted(GENERATORS),
        help="Signature algorithm",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.private_key:
        print("Error: a private key is required", file=sys.stderr)
        return 2

    try:
        print(sign_url(args.url, args.private_key, args.argument, args.algorithm))
    except ConfigurationError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
