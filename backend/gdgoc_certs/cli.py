#!/usr/bin/env python3
"""
GDGoC Certificates - Admin CLI

Usage:
    gdgoc-certs init-db                 # Create missing tables
    gdgoc-certs issuers                 # List issuers
    gdgoc-certs disable-login OCID      # Block an issuer
    gdgoc-certs enable-login OCID       # Unblock an issuer
    gdgoc-certs unlock-org OCID         # Let an issuer set their organization again

Uses DATABASE_URL from the environment / .env, like the API server.
"""

import argparse
import asyncio
import sys
from typing import Awaitable, Callable, List, Optional

from rich.console import Console
from rich.table import Table

from gdgoc_certs.core.config import settings
from gdgoc_certs.core.database import Database
from gdgoc_certs.core.exceptions import CertsError
from gdgoc_certs.models.issuer import Issuer
from gdgoc_certs.services.issuer_service import issuer_service

console = Console()


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI"""
    parser = argparse.ArgumentParser(
        prog="gdgoc-certs",
        description="Support operations for the GDGoC certificate service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  gdgoc-certs init-db
  gdgoc-certs issuers
  gdgoc-certs unlock-org 3f2a9c...     After a support ticket asking to rename an organization
        """
    )
    parser.add_argument("--database-url", help="Override DATABASE_URL")

    subparsers = parser.add_subparsers(dest="command", help="Commands")
    subparsers.add_parser("init-db", help="Create missing database tables")
    subparsers.add_parser("issuers", help="List issuers")

    for name, help_text in (
        ("disable-login", "Prevent an issuer from signing in"),
        ("enable-login", "Allow an issuer to sign in again"),
        ("unlock-org", "Clear an issuer's organization name and its lock"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("ocid", help="Identity proxy uid of the issuer")

    return parser


def render_issuers(issuers: List[Issuer]) -> None:
    table = Table(show_header=True, header_style="bold cyan", title="Issuers")
    table.add_column("OCID")
    table.add_column("Name")
    table.add_column("Email")
    table.add_column("Organization")
    table.add_column("Login")
    table.add_column("Created")

    for issuer in issuers:
        org = issuer.org_name or "[dim]-[/dim]"
        if issuer.org_name_locked:
            org += " [yellow](locked)[/yellow]"
        table.add_row(
            issuer.ocid,
            issuer.name,
            issuer.email,
            org,
            "[green]enabled[/green]" if issuer.can_login else "[red]disabled[/red]",
            issuer.created_at.strftime("%Y-%m-%d %H:%M"),
        )

    console.print(table)
    console.print(f"\n{len(issuers)} issuer(s)")


async def run_command(args: argparse.Namespace, database: Database) -> None:
    if args.command == "init-db":
        await database.create_tables()
        console.print("[green]✓ Database tables ready[/green]")
        return

    async with database.session() as db:
        if args.command == "issuers":
            render_issuers(await issuer_service.list_issuers(db))
            return

        actions: dict = {
            "disable-login": lambda: issuer_service.set_login_enabled(db, args.ocid, False),
            "enable-login": lambda: issuer_service.set_login_enabled(db, args.ocid, True),
            "unlock-org": lambda: issuer_service.unlock_org_name(db, args.ocid),
        }
        action: Callable[[], Awaitable[Issuer]] = actions[args.command]
        issuer = await action()
        console.print(f"[green]✓ {args.command} applied to {issuer.ocid} ({issuer.email})[/green]")


async def _main(args: argparse.Namespace) -> int:
    database = Database(settings, url=args.database_url)
    try:
        await run_command(args, database)
        return 0
    except CertsError as e:
        console.print(f"[red]✗ {e.message}[/red]")
        return 1
    finally:
        await database.close()


def main(argv: Optional[List[str]] = None) -> int:
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 2

    return asyncio.run(_main(args))


if __name__ == "__main__":
    sys.exit(main())
