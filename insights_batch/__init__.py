"""
insights_batch -- Batched execution of aggregation pipelines.

Runs an opaque, read-only pipeline against a large collection in bounded
batches and returns one uniform ``AggregationResult`` envelope that the
report writer persists as timestamped JSON.

Architecture:
    domain/     Frozen DTOs and pure helpers (``chunk``, batch planning).
    services/   ``BatchAggregationExecutor`` (pre- / post-aggregation),
                ``run_key_groups`` (one query per key group), report I/O.

Invariants:
    - Batches run strictly sequentially; the only pause is the fixed
      inter-batch delay.
    - The executor fails fast: no partial envelope is ever returned.
    - The key-group driver records per-group failures instead.
    - The store handle is passed in; nothing here opens a connection.
"""
