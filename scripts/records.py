"""
Scripts - Records.

============================================================
RESPONSIBILITY
============================================================
Command line access to single rows through the Record API.

- show: load one record by key, name or UUID
- list: list rows of a table
- save: insert or update a row from key=value pairs
- delete: delete one record

============================================================
USAGE
============================================================
python -m scripts.records show users 7
python -m scripts.records --name-column login show users ann
python -m scripts.records list users --limit 10
python -m scripts.records save users id=7 name=Ann
python -m scripts.records delete users 7

Values are parsed as JSON when possible (7, true, null),
otherwise kept as strings.

EXIT CODES:
- 0: Success
- 1: Not found, or the storage operation failed
- 2: Configuration error

============================================================
"""

import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from core.constants import DEFAULT_KEY_COLUMN, LOG_DATE_FORMAT, LOG_FORMAT
from core.exceptions import ConfigurationError, StorageError
from database import DatabaseConfig, SqlAlchemyGateway, create_database_engine
from storage import IdentifierKind, Record

logger = logging.getLogger("records")


def parse_value(raw: str) -> Any:
    """JSON value when the text parses as one, the text itself otherwise."""
    try:
        return json.loads(raw)
    except ValueError:
        return raw


def parse_assignments(pairs: List[str]) -> Dict[str, Any]:
    """
    Turn ["a=1", "b=x"] into {"a": 1, "b": "x"}.

    Raises:
        ValueError: For an item without "="
    """
    values = {}
    for pair in pairs:
        column, sep, raw = pair.partition("=")
        if not sep or not column:
            raise ValueError(f"Expected column=value, got {pair!r}")
        values[column] = parse_value(raw)
    return values


def emit(payload: Any) -> None:
    print(json.dumps(payload, indent=2, default=str, sort_keys=True))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Inspect and modify rows through the Record API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--env-file", default=None, help="Path to a .env file")
    parser.add_argument(
        "--key-column",
        default=DEFAULT_KEY_COLUMN,
        help=f"Primary key column (default: {DEFAULT_KEY_COLUMN})",
    )
    parser.add_argument("--name-column", default="", help="Column holding record names")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    show = commands.add_parser("show", help="Load and print one record")
    show.add_argument("table")
    show.add_argument("identifier")

    listing = commands.add_parser("list", help="List rows of a table")
    listing.add_argument("table")
    listing.add_argument("--limit", type=int, default=None)

    save = commands.add_parser("save", help="Insert or update a record")
    save.add_argument("table")
    save.add_argument("values", nargs="+", metavar="column=value")

    delete = commands.add_parser("delete", help="Delete one record")
    delete.add_argument("table")
    delete.add_argument("identifier")

    return parser


def run(args: argparse.Namespace, gateway: Any) -> int:
    """Execute one parsed command against a gateway."""
    options = {
        "table": args.table,
        "key_column": args.key_column,
        "name_column": args.name_column,
    }

    if args.command == "show":
        # A fresh record only holds fields after a successful load
        record = Record(parse_value(args.identifier), gateway, options, autoload=True)
        data = record.get_data()
        if not data:
            print(f"Not found: {args.table} {args.identifier}", file=sys.stderr)
            return 1
        emit(data)
        return 0

    if args.command == "list":
        record = Record(gateway=gateway, options=options)
        emit(record.get_columns_from_sql("*", limit=args.limit))
        return 0

    if args.command == "save":
        record = Record(parse_assignments(args.values), gateway, options)
        result = record.save_to_sql()
        emit({"success": result.success, "action": result.action, "key": result.key})
        return 0 if result else 1

    identifier = parse_value(args.identifier)
    record = Record(gateway=gateway, options=options)
    if record.classify_identifier(identifier) in (IdentifierKind.ID, IdentifierKind.UUID):
        deleted = record.delete_from_sql(identifier)
    else:
        record.use_identifier(identifier)
        deleted = record.delete_from_sql()
    emit({"deleted": deleted})
    return 0 if deleted else 1


def main(argv: Optional[List[str]] = None) -> int:
    """Records CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
    )

    try:
        engine = create_database_engine(DatabaseConfig.from_env(args.env_file))
    except ConfigurationError as e:
        logger.error(e.message)
        return 2

    try:
        return run(args, SqlAlchemyGateway(engine))
    except ValueError as e:
        parser.error(str(e))
    except ConfigurationError as e:
        logger.error(e.message)
        return 2
    except StorageError as e:
        logger.error(e.to_log_format())
        return 1
    finally:
        engine.dispose()


if __name__ == "__main__":
    sys.exit(main())
