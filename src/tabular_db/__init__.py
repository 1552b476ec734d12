"""tabular-db: an embedded, in-memory tabular SQL query evaluator.

Runs the SQL subset of introductory tutorial scripts (CREATE TABLE,
INSERT, SELECT with WHERE / GROUP BY / HAVING / ORDER BY / LIMIT, UPDATE,
DELETE, ALTER TABLE, CASE, aggregates and simple joins) against an
in-process catalog of tables.
"""

__version__ = "0.1.0"
