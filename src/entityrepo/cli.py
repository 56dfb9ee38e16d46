#!/usr/bin/env python3
"""entityrepo CLI for inspecting and maintaining table rows."""

import argparse
import sys

import psycopg
import questionary
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from entityrepo.entity import EntityDescriptor
from entityrepo.errors import RepositoryError
from entityrepo.logging_config import setup_logging
from entityrepo.query import PgQueryExecutor
from entityrepo.repository import EntityRepository
from entityrepo.schema import SchemaAccessor

console = Console()


def parse_key(parts: list[str]) -> object:
    """
    Turn command-line key arguments into a key for the repository.

    A single bare value ("7") is a scalar key; "attr=value" pairs build a
    mapping for composite keys.
    """
    if len(parts) == 1 and "=" not in parts[0]:
        return parts[0]

    key = {}
    for part in parts:
        attr, sep, value = part.partition("=")
        if not sep or not attr:
            raise argparse.ArgumentTypeError(f"Expected attr=value, got '{part}'")
        key[attr] = value
    return key


def open_repository(table: str) -> EntityRepository:
    """Build a repository for a table, reading its primary key from the database."""
    executor = PgQueryExecutor()
    schema = SchemaAccessor(executor)
    if not schema.table_exists(table):
        raise RepositoryError(f"Table '{schema.get_table_name(table)}' does not exist")
    primary_key = schema.get_primary_key(table)
    if not primary_key:
        raise RepositoryError(f"Table '{schema.get_table_name(table)}' has no primary key")
    return EntityRepository(executor, schema, EntityDescriptor(table, primary_key))


def render_rows(title: str, rows: list[dict]) -> None:
    table = Table(title=title)
    columns = list(rows[0].keys()) if rows else []
    for column in columns:
        table.add_column(column)
    for row in rows:
        table.add_row(*("" if row[c] is None else str(row[c]) for c in columns))
    console.print(table)


def describe(args) -> None:
    """Show columns and primary key of a table."""
    schema = SchemaAccessor(PgQueryExecutor())
    columns = schema.get_columns(args.table)
    if not columns:
        console.print(f"[red]Table {schema.get_table_name(args.table)} not found.[/]")
        return

    primary_key = schema.get_primary_key(args.table)
    table = Table(title=schema.get_table_name(args.table))
    table.add_column("column")
    table.add_column("type")
    table.add_column("nullable")
    table.add_column("key")
    for column in columns:
        table.add_row(
            column["name"],
            column["type"],
            "yes" if column["nullable"] else "no",
            "PK" if column["name"] in primary_key else "",
        )
    console.print(table)


def show(args) -> None:
    """Show one row by primary key."""
    repo = open_repository(args.table)
    entity = repo.get_one(parse_key(args.key))
    if entity is None:
        console.print("[red]No row found.[/]")
        return
    render_rows(args.table, [entity.get_data()])


def list_rows(args) -> None:
    """List rows, optionally filtered and ordered."""
    repo = open_repository(args.table)
    entities = repo.get_set(
        where=args.where, order=args.order, limit=args.limit, offset=args.offset
    )
    if not entities:
        console.print("[dim]No rows.[/]")
        return
    render_rows(args.table, [e.get_data() for e in entities])


def delete(args) -> None:
    """Delete one row by primary key after confirmation."""
    repo = open_repository(args.table)
    key = parse_key(args.key)
    entity = repo.get_one(key)
    if entity is None:
        console.print("[red]No row found.[/]")
        return

    render_rows(args.table, [entity.get_data()])
    if not args.yes and not questionary.confirm("Delete this row?").ask():
        console.print("[dim]Cancelled.[/]")
        return

    result = repo.delete_one(entity)
    console.print(f"[green]Deleted {result} row(s) from {args.table}.[/]")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="entityrepo CLI")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command", required=True)

    p = subparsers.add_parser("describe", help="Show table columns and primary key")
    p.add_argument("table")
    p.set_defaults(handler=describe)

    p = subparsers.add_parser("show", help="Show one row by primary key")
    p.add_argument("table")
    p.add_argument("key", nargs="+", help="Key value, or attr=value pairs")
    p.set_defaults(handler=show)

    p = subparsers.add_parser("list", help="List rows")
    p.add_argument("table")
    p.add_argument("--where", help="SQL predicate")
    p.add_argument("--order", help="SQL ordering, e.g. 'id DESC'")
    p.add_argument("--limit", type=int)
    p.add_argument("--offset", type=int)
    p.set_defaults(handler=list_rows)

    p = subparsers.add_parser("delete", help="Delete one row by primary key")
    p.add_argument("table")
    p.add_argument("key", nargs="+", help="Key value, or attr=value pairs")
    p.add_argument("--yes", action="store_true", help="Skip confirmation")
    p.set_defaults(handler=delete)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    try:
        args.handler(args)
    except (RepositoryError, argparse.ArgumentTypeError, psycopg.Error) as e:
        console.print(f"[red]{escape(str(e))}[/]")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
