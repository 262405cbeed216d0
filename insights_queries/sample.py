"""Simple pipelines over the ``transaction`` collection.

These are cheap per page and pair with the pre-aggregation strategy,
except ``TRANSACTIONS_BY_STATUS_PIPELINE`` which groups and so belongs with
post-aggregation.
"""

# Count of documents in the page it runs on.
SIMPLE_COUNT_PIPELINE = [
    {"$count": "total"},
]

# Field selection export.  The $limit is a safety cap per page.
SIMPLE_DOCUMENT_EXTRACTION_PIPELINE = [
    {
        "$project": {
            "_id": 1,
            "createdAt": 1,
            "updatedAt": 1,
        }
    },
    {"$limit": 10000},
]

TRANSACTIONS_BY_STATUS_PIPELINE = [
    {
        "$group": {
            "_id": "$status",
            "count": {"$sum": 1},
        }
    },
    {"$sort": {"count": -1}},
    {
        "$project": {
            "_id": 0,
            "status": "$_id",
            "count": 1,
        }
    },
]
