"""Command-line interface for create_request."""

import argparse
import asyncio
import json
import sys
from typing import Any, Optional

from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax

from . import __version__
from .core.executor import RequestExecutor
from .errors import RequestError
from .http.client import AiohttpTransport
from .logging_config import setup_logging
from .models.config import GraphQLOptions, RetryPolicy, TransportSettings
from .models.request import HttpMethod
from .requests import Request


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI."""
    parser = argparse.ArgumentParser(
        prog="create-request",
        description="Send an HTTP request with timeouts, retries and classified errors",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Simple GET
  create-request https://api.example.com/users

  # POST JSON with a timeout and retries
  create-request https://api.example.com/users -X POST --json '{"name": "Ada"}' --timeout 5000 --retries 2

  # Custom headers and query parameters
  create-request https://api.example.com/search -H "Authorization: Bearer abc" --query q=python --query page=2
        """,
    )

    parser.add_argument("url", help="URL to request")

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    # Request
    request_group = parser.add_argument_group("request")
    request_group.add_argument(
        "--request",
        "-X",
        dest="method",
        type=str.upper,
        choices=[method.value for method in HttpMethod],
        default="GET",
        help="HTTP method (default: GET)",
    )
    request_group.add_argument(
        "--header",
        "-H",
        action="append",
        default=[],
        metavar="'NAME: VALUE'",
        help="Request header, may be repeated",
    )
    request_group.add_argument(
        "--query",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Query parameter, may be repeated",
    )
    body_group = request_group.add_mutually_exclusive_group()
    body_group.add_argument(
        "--data",
        "-d",
        type=str,
        help="Text request body",
    )
    body_group.add_argument(
        "--json",
        type=str,
        metavar="JSON",
        help="JSON request body",
    )
    request_group.add_argument(
        "--graphql",
        action="store_true",
        help="Raise on GraphQL errors in the response body",
    )

    # Execution
    execution_group = parser.add_argument_group("execution")
    execution_group.add_argument(
        "--timeout",
        type=float,
        default=None,
        metavar="MS",
        help="Timeout per attempt in milliseconds",
    )
    execution_group.add_argument(
        "--retries",
        type=int,
        default=0,
        help="Retry attempts after the first failure",
    )
    execution_group.add_argument(
        "--retry-delay",
        type=float,
        default=None,
        metavar="MS",
        help="Delay between retries in milliseconds",
    )
    execution_group.add_argument(
        "--user-agent",
        type=str,
        help="Custom User-Agent string",
    )
    execution_group.add_argument(
        "--proxy",
        type=str,
        metavar="URL",
        help="Proxy URL",
    )

    # Output control
    output_group = parser.add_argument_group("output control")
    output_group.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Show response headers and debug logs",
    )
    output_group.add_argument(
        "--quiet",
        "-q",
        action="store_true",
        help="Only print the response body",
    )

    return parser


def parse_header(value: str) -> tuple[str, str]:
    """
    Split a ``Name: value`` header argument.

    Raises:
        ValueError: If the argument has no colon or an empty name
    """
    name, sep, header_value = value.partition(":")
    if not sep or not name.strip():
        raise ValueError(f"Invalid header: {value!r} (expected 'Name: value')")
    return name.strip(), header_value.strip()


def parse_query(value: str) -> tuple[str, str]:
    """
    Split a ``key=value`` query argument.

    Raises:
        ValueError: If the argument has no '=' or an empty key
    """
    key, sep, query_value = value.partition("=")
    if not sep or not key:
        raise ValueError(f"Invalid query parameter: {value!r} (expected key=value)")
    return key, query_value


def build_request(args: argparse.Namespace, executor: RequestExecutor) -> Request:
    """
    Translate parsed arguments into a Request.

    Raises:
        ValueError: For malformed header, query or JSON arguments
        RequestError: For invalid timeout or retry settings
    """
    request = Request(args.method, args.url, executor)

    for header in args.header:
        name, value = parse_header(header)
        request.with_header(name, value)
    for query in args.query:
        key, value = parse_query(query)
        request.with_query_param(key, value)

    body: Any = None
    if args.json is not None:
        try:
            body = json.loads(args.json)
        except ValueError as e:
            raise ValueError(f"Invalid JSON body: {e}") from e
    elif args.data is not None:
        body = args.data
    if body is not None:
        request.with_body(body)

    if args.graphql:
        request.descriptor.graphql = GraphQLOptions(throw_on_error=True)

    if args.timeout is not None:
        request.with_timeout(args.timeout)
    if args.retry_delay is not None:
        request.with_retries(RetryPolicy(attempts=args.retries, delay=args.retry_delay))
    elif args.retries:
        request.with_retries(args.retries)

    return request


def print_body(console: Console, body: bytes, content_type: str) -> None:
    """Print a response body, pretty-printing JSON when possible."""
    if not body:
        return
    text = body.decode("utf-8", errors="replace")
    if "json" in content_type.lower():
        try:
            formatted = json.dumps(json.loads(text), indent=2, ensure_ascii=False)
        except ValueError:
            pass
        else:
            console.print(Syntax(formatted, "json", word_wrap=True))
            return
    console.print(text, markup=False, highlight=False)


def run_request(args: argparse.Namespace) -> int:
    """Send the request described by the arguments."""
    console = Console()
    error_console = Console(stderr=True)

    if args.verbose:
        setup_logging("DEBUG", format_string="%(name)s - %(levelname)s - %(message)s")
    elif args.quiet:
        setup_logging("ERROR")
    else:
        setup_logging("WARNING", format_string="%(levelname)s - %(message)s")

    try:
        settings = TransportSettings(user_agent=args.user_agent, proxy=args.proxy)
    except ValueError as e:
        error_console.print(f"[red]Configuration error:[/red] {e}")
        return 1

    async def run() -> int:
        async with AiohttpTransport(settings) as transport:
            executor = RequestExecutor(transport)
            try:
                request = build_request(args, executor)
                response = await request.get_response()
                body = b"" if request.method == "HEAD" else await response.get_bytes()
            except RequestError as e:
                error_console.print(f"[red]{type(e).__name__}:[/red] {escape(str(e))}", highlight=False)
                if args.verbose and e.cause is not None:
                    error_console.print(e.format_with_cause(), markup=False, highlight=False)
                return 1
            except ValueError as e:
                error_console.print(f"[red]Error:[/red] {escape(str(e))}")
                return 1

            if not args.quiet:
                console.print(f"[bold]{response.status}[/bold] {response.status_text}  {request.method} {response.url}")
                if args.verbose:
                    for name, value in response.headers.items():
                        console.print(f"[cyan]{name}[/cyan]: {value}", highlight=False)
                console.print()
            print_body(console, body, response.headers.get("Content-Type", ""))
            return 0

    return asyncio.run(run())


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)
    return run_request(args)


if __name__ == "__main__":
    sys.exit(main())
