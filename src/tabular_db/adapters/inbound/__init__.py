"""Inbound adapters for the query evaluator.

Inbound adapters handle incoming requests and convert them to
internal domain operations.

Exports:
    SQL Parser:
        - SQLParser: Parser that converts SQL strings to logical plans

The REST API (``rest_api.create_app``) and the command line
(``cli.app``) are imported from their modules directly; both depend on
the application layer, which itself uses the parser.
"""

from tabular_db.adapters.inbound.sql_parser import SQLParser

__all__ = [
    "SQLParser",
]
