"""Command-line argument parsing for xcc."""

from __future__ import annotations

import argparse
from typing import Optional, Sequence

from . import __version__


def _positive_int(value: str) -> int:
    """Parse and validate a positive integer CLI value.

    Args:
        value: Raw command-line argument value.

    Returns:
        The validated positive integer.

    Raises:
        argparse.ArgumentTypeError: If value is not a positive integer.
    """
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("must be an integer") from exc

    if parsed <= 0:
        raise argparse.ArgumentTypeError("must be greater than 0")

    return parsed


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments for starting an Xcode Cloud build.

    Every option can also be supplied through an ``XCC_*`` environment
    variable; the merge happens in :func:`xcc.config.load_config`, so options
    that were not given on the command line are ``None`` here.

    Returns:
        Parsed CLI arguments.
    """
    parser = argparse.ArgumentParser(
        prog="xcc",
        description=(
            "Start an Xcode Cloud build for a product, workflow and branch, tag "
            "or pull request. Anything not given as an option is chosen interactively."
        ),
        epilog="API keys can be created at https://appstoreconnect.apple.com/access/integrations/api",
    )

    credentials = parser.add_argument_group("credentials")
    credentials.add_argument(
        "--issuer-id",
        help="App Store Connect API issuer id (env: XCC_ISSUER_ID).",
    )
    credentials.add_argument(
        "--private-key-id",
        help="App Store Connect API private key id (env: XCC_PRIVATE_KEY_ID).",
    )
    credentials.add_argument(
        "--private-key",
        help="App Store Connect API private key contents, PEM (env: XCC_PRIVATE_KEY).",
    )

    parser.add_argument(
        "--product",
        help="Name of the Xcode Cloud product to build (env: XCC_PRODUCT).",
    )
    parser.add_argument(
        "--workflow",
        help="Name of the workflow to start (env: XCC_WORKFLOW).",
    )

    source = parser.add_mutually_exclusive_group()
    source.add_argument(
        "--reference",
        help="Branch or tag name to build (env: XCC_REFERENCE).",
    )
    source.add_argument(
        "--pull-request",
        type=_positive_int,
        help="Pull request number to build (env: XCC_PULL_REQUEST).",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging on stderr.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    return parser.parse_args(argv)
