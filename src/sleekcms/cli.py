"""
Command line access to SleekCMS site content.
"""

import argparse
import json
import logging
import sys

from .client import create_client
from .config import DEV_ENVS, ClientOptions
from .errors import SleekCMSError
from .resolver import get_default_resolver


def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def build_options(args) -> ClientOptions:
    """Merge command line flags over ``SLEEKCMS_*`` environment variables."""
    return ClientOptions.from_env(
        site_token=args.token,
        env=args.env,
        dev_env=args.dev_env,
        lang=args.lang,
        cdn=True if args.cdn else None,
    )


def emit(value):
    print(json.dumps(value, indent=2, ensure_ascii=False))


def cmd_content(args):
    """Print the whole document, or a query over it."""
    client = create_client(build_options(args))
    emit(client.get_content(args.query))
    return 0


def cmd_pages(args):
    """Print pages under a path prefix."""
    client = create_client(build_options(args))
    emit(client.get_pages(args.prefix, args.query))
    return 0


def cmd_page(args):
    """Print a single page by exact path."""
    client = create_client(build_options(args))
    page = client.get_page(args.path)
    if page is None:
        print(f"✗ No page at {args.path}")
        return 1
    emit(page)
    return 0


def cmd_slugs(args):
    """Print slugs of pages under a path prefix."""
    client = create_client(build_options(args))
    emit(client.get_slugs(args.prefix))
    return 0


def cmd_resolve(args):
    """Resolve an environment alias to its tag."""
    options = build_options(args)
    alias = args.alias or options.env
    tag = get_default_resolver().resolve_tag(options.site_token, alias, options.dev_env)
    print(tag)
    return 0


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="SleekCMS content CLI",
        prog="sleekcms"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging"
    )
    parser.add_argument("--token", help="Site token (default: $SLEEKCMS_SITE_TOKEN)")
    parser.add_argument("--env", help="Environment alias or tag (default: latest)")
    parser.add_argument(
        "--dev-env",
        choices=sorted(DEV_ENVS),
        help="Routing mode (default: production)"
    )
    parser.add_argument("--lang", help="Content language")
    parser.add_argument(
        "--cdn",
        action="store_true",
        help="Resolve the environment alias to an immutable tag first"
    )

    subparsers = parser.add_subparsers(
        dest="command",
        help="Available commands"
    )

    content_parser = subparsers.add_parser("content", help="Print site content")
    content_parser.add_argument("--query", help="JMESPath query applied to the document")
    content_parser.set_defaults(func=cmd_content)

    pages_parser = subparsers.add_parser("pages", help="List pages under a path prefix")
    pages_parser.add_argument("prefix", nargs="?", default=None)
    pages_parser.add_argument("--query", help="JMESPath query applied to the pages")
    pages_parser.set_defaults(func=cmd_pages)

    page_parser = subparsers.add_parser("page", help="Show one page by exact path")
    page_parser.add_argument("path")
    page_parser.set_defaults(func=cmd_page)

    slugs_parser = subparsers.add_parser("slugs", help="List slugs under a path prefix")
    slugs_parser.add_argument("prefix")
    slugs_parser.set_defaults(func=cmd_slugs)

    resolve_parser = subparsers.add_parser("resolve", help="Resolve an environment alias")
    resolve_parser.add_argument("alias", nargs="?", default=None)
    resolve_parser.set_defaults(func=cmd_resolve)

    args = parser.parse_args(argv)

    if not hasattr(args, 'func'):
        parser.print_help()
        return 1

    setup_logging(args.verbose)
    try:
        return args.func(args)
    except SleekCMSError as e:
        print(f"✗ {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
