"""
insights_kernel -- Shared infrastructure for the reporting utilities.

Provides the pieces every other package leans on:

    logging_config   Structured JSON logging with run-scoped context.
    exceptions       Typed exception hierarchy (every class has a ``code``).
    domain.clock     Injectable clock so timestamps are deterministic in tests.
    db               DocumentStore protocol, the pymongo adapter, and the
                     explicit connection lifecycle.

Architecture:
    insights_kernel imports nothing from insights_config, insights_batch,
    or insights_queries.  The connection is an explicit handle created by
    the entry scripts and passed down; there is no module-level store.
"""
