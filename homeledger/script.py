# coding: utf-8
"""CLI front end to analyse the ledger and report the results.


CONFIGURE
---------
We look for the config file in ~/.config/homeledger/homeledger.cfg.  It's in INI
format, and needs to have at least the following sections (with values modified
for your installation):

    [db]
    dialect = postgresql
    driver = psycopg2
    username = user
    password = pass
    host = localhost
    port = 5432
    database = homeledger

    [books]
    reporting_currency = GBP
    start_date = 2010-01-01

ANALYSE
-------
To write the state of every account, holding, payee, category, tax basis and tag
at the end of the books:

    python script.py analyse /path/to/desired/dumpfile.csv

One dimension only (deposits, cash, loans, portfoliocash, holdings, payees,
categories, taxbases, tags or chargeables):

    python script.py analyse -d payees /path/to/desired/dumpfile.csv

As of a given date, or the changes over a period:

    python script.py analyse -e 2020-04-05 /path/to/desired/dumpfile.csv
    python script.py analyse -s 2019-04-06 -e 2020-04-05 /path/to/desired/dumpfile.csv

Add --totals/-t to write the group totals instead of the individual buckets.

CHECK
-----
To verify that assets, payees, categories and tax bases reconcile:

    python script.py check
"""
# stdlib imports
import argparse
import logging
import sys
from argparse import ArgumentParser, _SubParsersAction
from datetime import date, datetime
from typing import Tuple, Union

# 3rd party imports
import sqlalchemy
import tablib


# Local imports
from homeledger import CONFIG
from homeledger.analysis import Analysis, AnalysisView, analyse, check_totals
from homeledger.analysis import report
from homeledger.database import Base, sessionmanager
from homeledger.loader import load_dataset


def create_engine():
    """
    """
    engine = sqlalchemy.create_engine(CONFIG.db_uri)
    # Create table metadata here too
    Base.metadata.create_all(bind=engine)
    return engine


def drop_all_tables(args):
    """Just what it says on the tin.  DROP all tables defined by models.

    Args:
        args: argparse.Namespace instance populated with parsed CLI arguments.
    """
    engine = sqlalchemy.create_engine(CONFIG.db_uri)
    print("Dropping all tables on {}...".format(CONFIG.db_uri), end=" ")
    Base.metadata.drop_all(bind=engine)
    print("finished.")


def run_analysis(args: argparse.Namespace) -> Analysis:
    """Load the ledger and run the analysis over it.

    Args:
        args: argparse.Namespace instance populated with parsed CLI arguments.
    """
    engine = create_engine()
    with sessionmanager(bind=engine) as session:
        dataset = load_dataset(
            session,
            reporting_currency=args.currency,
            end_date=args.dtend,
        )
    return analyse(dataset)


def select_view(
    analysis: Analysis, args: argparse.Namespace
) -> Union[Analysis, AnalysisView]:
    """The whole analysis, its state on `dtend`, or its changes over a range."""
    if args.dtstart:
        return analysis.ranged(args.dtstart, args.dtend or date.max)
    if args.dtend:
        return analysis.dated(args.dtend)
    return analysis


def dump_analysis(args: argparse.Namespace) -> None:
    """Analyse the ledger; write the buckets (or totals) of a dimension to disk.

    Args:
        args: argparse.Namespace instance populated with parsed CLI arguments.
    """
    analysis = run_analysis(args)
    view = select_view(analysis, args)

    if args.dimension == "chargeables":
        dataset = report.flatten_chargeables(view)
    elif args.dimension:
        dataset = flatten(view, args.dimension, args.totals)
    else:
        dataset = tablib.Dataset()
        for name in report.REGISTRIES:
            dataset = stack(dataset, flatten(view, name, args.totals), name)

    with open(args.file, "w") as csvfile:
        csvfile.write(dataset.csv)


def flatten(view, name: str, totals: bool) -> tablib.Dataset:
    registry = report.get_registry(view, name)
    if totals:
        return report.flatten_totals(registry)
    return report.flatten_registry(registry)


def stack(
    dataset: tablib.Dataset, other: tablib.Dataset, name: str
) -> tablib.Dataset:
    """Append the rows of `other`, prefixed by the dimension name.

    Dimensions don't share value-set columns, so the combined dump is written
    as (dimension, name, group, field, value) rows.
    """
    if not dataset.headers:
        dataset.headers = ("dimension", "name", "group", "field", "value")
    fields = other.headers[2:]
    for row in other:
        for field, value in zip(fields, row[2:]):
            dataset.append((name, row[0], row[1], field, value))
    return dataset


def check_analysis(args: argparse.Namespace) -> None:
    """Analyse the ledger and verify that its totals reconcile.

    Exits with status 1 if they don't.

    Args:
        args: argparse.Namespace instance populated with parsed CLI arguments.
    """
    analysis = run_analysis(args)
    view = select_view(analysis, args)
    if check_totals(view):
        print("Totals reconcile.")
    else:
        print("Totals don't reconcile.")
        sys.exit(1)


def make_argparser() -> Tuple[ArgumentParser, _SubParsersAction]:
    """Return subparsers along with the ArgumentParer, so the latter can be extended.
    """
    argparser = ArgumentParser(description="Household ledger analysis")
    argparser.add_argument(
        "--verbose", "-v", action="count", default=0, help="-vv for DEBUG"
    )
    argparser.set_defaults(func=None)
    subparsers = argparser.add_subparsers()

    drop_parser = subparsers.add_parser(
        "drop", aliases=["erase"], help="Drop all database tables"
    )
    drop_parser.set_defaults(func=drop_all_tables)

    analyse_parser = subparsers.add_parser(
        "analyse", aliases=["dump"], help="Dump analysis to CSV file"
    )
    analyse_parser.add_argument("file", help="CSV file")
    add_range_arguments(analyse_parser)
    analyse_parser.add_argument(
        "-d",
        "--dimension",
        default=None,
        choices=list(report.REGISTRIES) + ["chargeables"],
        help="Dump only this dimension",
    )
    analyse_parser.add_argument(
        "-t", "--totals", action="store_true", help="Dump group totals"
    )
    analyse_parser.set_defaults(func=dump_analysis)

    check_parser = subparsers.add_parser(
        "check", help="Verify that the analysis totals reconcile"
    )
    add_range_arguments(check_parser)
    check_parser.set_defaults(func=check_analysis)

    return argparser, subparsers


def add_range_arguments(parser: ArgumentParser) -> None:
    parser.add_argument(
        "-s",
        "--dtstart",
        default=None,
        help="Start date of the reporting period (included)",
    )
    parser.add_argument(
        "-e",
        "--dtend",
        default=None,
        help="End date of the reporting period (included)",
    )
    parser.add_argument(
        "-c",
        "--currency",
        default=None,
        help="Reporting currency (ISO4217); defaults to config",
    )


def run(argparser: ArgumentParser) -> None:
    """Parse args and pass them to the indication function.

    Args:
        argparser: the ArgumentParser instance returned by make_argparser().
    """
    args = argparser.parse_args()

    level = {0: logging.WARNING, 1: logging.INFO}.get(args.verbose, logging.DEBUG)
    logging.basicConfig(level=level)
    logging.captureWarnings(True)

    # Parse date args
    if getattr(args, "dtstart", None):
        args.dtstart = datetime.strptime(args.dtstart, "%Y-%m-%d").date()

    if getattr(args, "dtend", None):
        args.dtend = datetime.strptime(args.dtend, "%Y-%m-%d").date()

    # Execute selected function
    if args.func:
        args.func(args)
    else:
        argparser.print_help()


def main() -> None:
    argparser, subparsers = make_argparser()
    run(argparser)


if __name__ == "__main__":
    main()
