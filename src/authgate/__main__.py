"""AuthGate entry point.

Subcommands run the HTTP server or administer the store behind it.
"""

import argparse
import json
import logging
import sys
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version

from authgate import __version__
from authgate.config import get_settings
from authgate.logging_setup import setup_logging

logger = logging.getLogger(__name__)


def _package_version() -> str:
    try:
        return get_version("authgate")
    except PackageNotFoundError:
        return __version__


def cmd_serve(args: argparse.Namespace) -> int:
    from authgate.api.serve import run_api_server

    settings = get_settings()
    run_api_server(
        host=args.host or settings.host,
        port=args.port or settings.port,
        dev=args.dev,
    )
    return 0


def cmd_cleanup(args: argparse.Namespace) -> int:
    from authgate.oauth2.server import get_oauth_server

    removed = get_oauth_server().cleanup_expired()
    print(
        f"Removed {removed['access_tokens']} access tokens, "
        f"{removed['refresh_tokens']} refresh tokens, "
        f"{removed['authorization_codes']} authorization codes "
        f"({sum(removed.values())} total)"
    )
    return 0


def cmd_create_client(args: argparse.Namespace) -> int:
    from authgate.oauth2.models import GrantType
    from authgate.oauth2.server import get_oauth_server

    try:
        grant_types = GrantType.from_strings(args.grant_type)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    created = get_oauth_server().clients.create_client(
        name=args.name,
        redirect_uris=args.redirect_uri,
        grant_types=grant_types,
        confidential=not args.public,
        allowed_scopes=args.scope,
        description=args.description,
    )
    print(json.dumps(created, indent=2))
    print("Store the client secret now; it cannot be shown again.", file=sys.stderr)
    return 0


def cmd_list_clients(args: argparse.Namespace) -> int:
    from authgate.oauth2.server import get_oauth_server

    manager = get_oauth_server().clients
    clients = manager.list_active_clients() if args.active else manager.list_clients()
    if not clients:
        print("No clients registered.")
        return 0
    for c in clients:
        status = "active" if c.active else "inactive"
        kind = "confidential" if c.confidential else "public"
        print(f"{c.client_id}  {c.name}  [{status}, {kind}]  grants={','.join(c.grant_types)}")
    return 0


def cmd_delete_client(args: argparse.Namespace) -> int:
    from authgate.oauth2.errors import EntityNotFoundError
    from authgate.oauth2.server import get_oauth_server

    try:
        get_oauth_server().clients.delete_client(args.client_id)
    except EntityNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print(f"Deleted client {args.client_id}")
    return 0


def cmd_create_user(args: argparse.Namespace) -> int:
    import getpass

    from authgate.oauth2.server import get_oauth_server

    password = args.password or getpass.getpass("Password: ")
    try:
        user = get_oauth_server().create_user(
            email=args.email,
            username=args.username,
            password=password,
            roles=args.role + (["ROLE_ADMIN"] if args.admin else []),
        )
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print(f"Created user {user.username} ({user.id})")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="authgate",
        description="AuthGate - OAuth2 authorization server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  authgate serve                              Start the HTTP server
  authgate serve --dev                        Start with auto-reload (dev mode)
  authgate create-client --name "My App" \\
      --redirect-uri https://app.example/cb \\
      --grant-type authorization_code --grant-type refresh_token \\
      --scope openid --scope profile --scope offline_access
  authgate list-clients --active
  authgate cleanup-expired-tokens            Delete expired tokens and codes
""",
    )
    parser.add_argument(
        "--version",
        "-v",
        action="version",
        version=f"%(prog)s {_package_version()}",
    )
    parser.add_argument(
        "--log-level", default=None, help="Log level (default: AUTHGATE_LOG_LEVEL or INFO)"
    )

    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP server")
    serve.add_argument("--host", type=str, default=None, help="Host to bind")
    serve.add_argument("--port", "-p", type=int, default=None, help="Port to bind")
    serve.add_argument("--dev", action="store_true", help="Development mode with auto-reload")
    serve.set_defaults(func=cmd_serve)

    cleanup = sub.add_parser(
        "cleanup-expired-tokens", help="Delete expired access/refresh tokens and codes"
    )
    cleanup.set_defaults(func=cmd_cleanup)

    create = sub.add_parser("create-client", help="Register an OAuth2 client")
    create.add_argument("--name", required=True)
    create.add_argument("--redirect-uri", action="append", required=True)
    create.add_argument(
        "--grant-type",
        action="append",
        required=True,
        help="authorization_code, client_credentials or refresh_token (repeatable)",
    )
    create.add_argument("--scope", action="append", default=[], help="Allowed scope (repeatable)")
    create.add_argument("--description", default=None)
    create.add_argument("--public", action="store_true", help="Register a public (PKCE) client")
    create.set_defaults(func=cmd_create_client)

    list_cmd = sub.add_parser("list-clients", help="List registered clients")
    list_cmd.add_argument("--active", action="store_true", help="Only active clients")
    list_cmd.set_defaults(func=cmd_list_clients)

    delete = sub.add_parser("delete-client", help="Delete a client and its tokens")
    delete.add_argument("client_id")
    delete.set_defaults(func=cmd_delete_client)

    user = sub.add_parser("create-user", help="Create a resource owner account")
    user.add_argument("--email", required=True)
    user.add_argument("--username", required=True)
    user.add_argument("--password", default=None, help="Prompted for when omitted")
    user.add_argument("--role", action="append", default=[], help="Extra role (repeatable)")
    user.add_argument("--admin", action="store_true", help="Grant ROLE_ADMIN")
    user.set_defaults(func=cmd_create_user)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    setup_logging(level=args.log_level or get_settings().log_level)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
