"""Distinct public keys present in the ``transaction`` collection."""

EXTRACT_PUBLIC_KEYS_PIPELINE = [
    {
        "$match": {
            "$and": [
                {"publicKey": {"$exists": True}},
                {"publicKey": {"$ne": None}},
                {"publicKey": {"$ne": ""}},
            ]
        }
    },
    {"$group": {"_id": "$publicKey"}},
    {"$project": {"_id": 0, "publicKey": "$_id"}},
]
