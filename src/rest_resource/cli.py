"""Command line entry point for the REST resource client.

Two subcommands are provided:

- ``request``: perform one request against ``REST_API_URL`` with the
  configured credentials, retries and timeouts, and print the result
- ``drift``: compare an expected JSON document with an observed one

Examples
--------
.. code-block:: bash

    rest-resource request GET /api/users --query page=2
    rest-resource request POST /api/users --body '{"name": "john"}'
    rest-resource drift expected.json observed.json --ignore lastLogin
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from dotenv import load_dotenv

from .config.settings import Settings
from .exceptions import RestResourceError
from .resources import ResourceManager
from .utils.drift import DriftPolicy
from .utils.http_client import RestClient
from .utils.security import setup_secure_logging

logger = logging.getLogger(__name__)


def _parse_pairs(values: Optional[List[str]], option: str) -> Dict[str, str]:
    """Parse repeated ``key=value`` options into a dict."""
    pairs: Dict[str, str] = {}
    for item in values or []:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise argparse.ArgumentTypeError(f"{option} expects key=value, got '{item}'")
        pairs[key] = value
    return pairs


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rest-resource", description="REST resource client"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    request = subparsers.add_parser("request", help="Perform a single request")
    request.add_argument("method", help="HTTP method, e.g. GET or POST")
    request.add_argument("endpoint", help="Endpoint relative to REST_API_URL")
    request.add_argument("--query", action="append", metavar="KEY=VALUE")
    request.add_argument("--header", action="append", metavar="KEY=VALUE")
    request.add_argument("--body", help="Request body (JSON)")
    request.add_argument("--timeout", type=float, help="Per-attempt timeout in seconds")
    request.add_argument("--retries", type=int, help="Number of attempts")

    drift = subparsers.add_parser("drift", help="Compare two JSON documents")
    drift.add_argument("expected", type=Path, help="Expected JSON file")
    drift.add_argument("observed", type=Path, help="Observed JSON file")
    drift.add_argument(
        "--ignore", action="append", default=[], metavar="FIELD", help="Field to ignore"
    )
    return parser


async def run_request(args: argparse.Namespace, settings: Settings) -> int:
    """Execute the ``request`` subcommand and print status and body."""
    query = _parse_pairs(args.query, "--query")
    headers = _parse_pairs(args.header, "--header")

    async with RestClient.from_settings(settings) as client:
        manager = ResourceManager(client)
        result = await manager.query(
            args.endpoint,
            method=args.method,
            headers=headers,
            body=args.body,
            query_params=query,
            timeout=args.timeout,
            retries=args.retries,
        )

    print(f"HTTP {result.status_code} {result.id}")
    print(result.response)
    return 0 if 200 <= result.status_code < 300 else 1


def run_drift(args: argparse.Namespace, settings: Settings) -> int:
    """Execute the ``drift`` subcommand; exit status 1 means drift."""
    expected = args.expected.read_text(encoding="utf-8")
    observed = args.observed.read_text(encoding="utf-8")

    policy = DriftPolicy(ignore_fields=settings.ignore_fields + list(args.ignore))
    report = policy.check(expected, observed)
    if not report.drift_detected:
        print("No drift detected")
        return 0

    for diff in report.diffs:
        print(
            f"{diff.kind.value}\t{diff.path or '<body>'}\t"
            f"expected={json.dumps(diff.expected)}\tobserved={json.dumps(diff.observed)}"
        )
    return 1


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the ``rest-resource`` command.

    :param argv: Command line arguments, defaults to ``sys.argv[1:]``
    :type argv: Optional[Sequence[str]]
    :return: Process exit status
    :rtype: int
    """
    # Load environment variables from .env file if it exists
    load_dotenv()

    parser = build_parser()
    args = parser.parse_args(argv)

    settings = Settings()
    setup_secure_logging(level=settings.log_level)
    logger.debug("Settings loaded for command %s", args.command)

    try:
        if args.command == "request":
            return asyncio.run(run_request(args, settings))
        return run_drift(args, settings)
    except argparse.ArgumentTypeError as e:
        parser.error(str(e))
    except RestResourceError as e:
        print(e.to_json(), file=sys.stderr)
        return 2
    except (OSError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
