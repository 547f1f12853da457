"""
MVP CLI - Command-line interface for raw MVP API calls.

This layer wraps ApiClient verbs as commands. It handles:
- Argument parsing
- TTY detection for human vs machine output
- JSON output for piping/automation
"""

import argparse
import json
import logging
import sys
from typing import Any

from mvp_api.core.client import ApiClient
from mvp_api.core.errors import APIError, ClientError, ValidationError

# =============================================================================
# Output Helpers
# =============================================================================


def is_tty() -> bool:
    """Check if stdout is a TTY (human) or pipe (machine)."""
    return sys.stdout.isatty()


def json_output(data: Any, pretty: bool = False) -> None:
    """Print JSON output."""
    indent = 2 if pretty or is_tty() else None
    print(json.dumps(data, indent=indent, default=str))


def error_output(error: ClientError) -> None:
    """Print error and exit."""
    json_output(error.to_dict())
    sys.exit(1)


def success_output(data: Any) -> None:
    """Print success output."""
    json_output(data)


def read_data(raw: str | None) -> Any:
    """Parse a --data argument (JSON text, or - for stdin)."""
    if raw is None:
        return None
    try:
        if raw == "-":
            return json.load(sys.stdin)
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid JSON in --data: {e}")


# =============================================================================
# CLI Commands
# =============================================================================


def cmd_get(client: ApiClient, args: argparse.Namespace) -> None:
    """GET an endpoint and print the response."""
    try:
        result = client.get(args.endpoint, use_credentials=not args.anonymous, override_uri=args.uri)
        success_output(result)
    except ClientError as e:
        error_output(e)


def cmd_post(client: ApiClient, args: argparse.Namespace) -> None:
    """POST JSON to an endpoint and print the response."""
    try:
        data = read_data(args.data)
        result = client.post(args.endpoint, data, use_credentials=not args.anonymous, override_uri=args.uri)
        success_output(result)
    except ClientError as e:
        error_output(e)


def cmd_put(client: ApiClient, args: argparse.Namespace) -> None:
    """PUT JSON to an endpoint."""
    try:
        data = read_data(args.data)
        ok = client.put(args.endpoint, data, use_credentials=not args.anonymous, override_uri=args.uri)
        success_output({"success": ok})
        if not ok:
            sys.exit(1)
    except ClientError as e:
        error_output(e)


def cmd_delete(client: ApiClient, args: argparse.Namespace) -> None:
    """DELETE an endpoint."""
    try:
        ok = client.delete(args.endpoint, use_credentials=not args.anonymous, override_uri=args.uri)
        success_output({"success": ok})
        if not ok:
            sys.exit(1)
    except ClientError as e:
        error_output(e)


def cmd_refresh(client: ApiClient, args: argparse.Namespace) -> None:
    """Exchange the refresh token and print the new credentials."""
    try:
        credentials = client.refresh_credentials()
        if credentials is None:
            raise APIError("Token refresh failed")
        success_output(credentials.to_dict())
    except ClientError as e:
        error_output(e)


# =============================================================================
# Parser
# =============================================================================


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        description="MVP CLI - Authenticated calls to the Microsoft MVP API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Configuration:
  MVP_SUBSCRIPTION_KEY, MVP_CLIENT_ID, MVP_CLIENT_SECRET, MVP_LEGACY_APP,
  MVP_ACCESS_TOKEN, MVP_REFRESH_TOKEN, MVP_BASE_URL

Examples:
  mvp get profile
  mvp get contributions/0/10 | jq '.Contributions[].Title'
  mvp post contributions --data - < contribution.json
  mvp delete "contributions?id=12345"
  mvp refresh
""",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Log requests and token refreshes to stderr")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Options shared by every request command
    request_opts = argparse.ArgumentParser(add_help=False)
    request_opts.add_argument("endpoint", help="Endpoint path relative to the API base URL")
    request_opts.add_argument("--uri", help="Absolute URI to call instead of base URL + endpoint")
    request_opts.add_argument("--anonymous", action="store_true", help="Send no credentials or subscription key")

    body_opts = argparse.ArgumentParser(add_help=False)
    body_opts.add_argument("--data", "-d", help="JSON request body (or - for stdin)")

    get = subparsers.add_parser("get", parents=[request_opts], help="GET an endpoint")
    get.set_defaults(func=cmd_get)

    post = subparsers.add_parser("post", parents=[request_opts, body_opts], help="POST JSON to an endpoint")
    post.set_defaults(func=cmd_post)

    put = subparsers.add_parser("put", parents=[request_opts, body_opts], help="PUT JSON to an endpoint")
    put.set_defaults(func=cmd_put)

    delete = subparsers.add_parser("delete", parents=[request_opts], help="DELETE an endpoint")
    delete.set_defaults(func=cmd_delete)

    refresh = subparsers.add_parser("refresh", help="Exchange the refresh token for a new access token")
    refresh.set_defaults(func=cmd_refresh)

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(0)

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            stream=sys.stderr,
        )

    client = ApiClient()
    args.func(client, args)


if __name__ == "__main__":
    main()
