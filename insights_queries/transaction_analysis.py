"""
Per-merchant transaction analysis, driven by a list of public keys.

For every public key: first commerce details, oldest transaction date,
counts of V1 (string ``_id``) vs V2 (ObjectId ``_id``) transactions with
their percentages, and the payment methods recorded on the linked
``webcheckout`` documents.  Dates are rendered in the America/Bogota zone.
"""

from __future__ import annotations

from typing import Any

REPORT_TIMEZONE = "America/Bogota"
REPORT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _format_date(expression: Any) -> dict[str, Any]:
    return {
        "$dateToString": {
            "date": expression,
            "format": REPORT_DATE_FORMAT,
            "timezone": REPORT_TIMEZONE,
        }
    }


def _percentage(numerator: Any, denominator: Any) -> dict[str, Any]:
    """``"<n/d*100 rounded to 1 place>%"``, 0 when the denominator is 0."""
    return {
        "$concat": [
            {
                "$toString": {
                    "$round": [
                        {
                            "$cond": [
                                {"$eq": [denominator, 0]},
                                0,
                                {"$multiply": [{"$divide": [numerator, denominator]}, 100]},
                            ]
                        },
                        1,
                    ]
                }
            },
            "%",
        ]
    }


def _count_where_id_type(bson_type: str) -> dict[str, Any]:
    return {"$sum": {"$cond": [{"$eq": [{"$type": "$_id"}, bson_type]}, 1, 0]}}


def _webcheckout_lookup() -> dict[str, Any]:
    return {
        "$lookup": {
            "from": "webcheckout",
            "let": {
                "txIds": "$transactionIds",
                "txIdsString": "$transactionIdsAsString",
            },
            "pipeline": [
                {
                    "$match": {
                        "$expr": {
                            "$or": [
                                {"$in": ["$transactionId", "$$txIds"]},
                                {"$in": ["$transactionId", "$$txIdsString"]},
                            ]
                        }
                    }
                },
                {"$sort": {"createdAt": -1}},
                {"$unwind": "$history"},
                {
                    "$addFields": {
                        "paymentMethodUnified": {
                            "$ifNull": ["$history.paymentMethod", "$history.type"]
                        }
                    }
                },
                {
                    "$group": {
                        "_id": "$paymentMethodUnified",
                        "count": {"$sum": 1},
                        "exampleId": {"$first": "$_id"},
                        "exampleCreatedAt": {"$first": "$createdAt"},
                    }
                },
                {
                    "$group": {
                        "_id": None,
                        "types": {
                            "$push": {
                                "type": "$_id",
                                "count": "$count",
                                "exampleId": "$exampleId",
                                "exampleCreatedAt": "$exampleCreatedAt",
                            }
                        },
                        "totalCount": {"$sum": "$count"},
                    }
                },
            ],
            "as": "webcheckoutData",
        }
    }


def create_transaction_analysis_pipeline(public_keys: list[str]) -> list[dict[str, Any]]:
    """Build the analysis pipeline for ``public_keys``.

    A new list is returned on every call.
    """
    return [
        {"$match": {"publicKey": {"$in": list(public_keys)}}},
        {"$sort": {"createdAt": 1}},
        {"$addFields": {"transactionIdAsString": {"$toString": "$_id"}}},
        {
            "$group": {
                "_id": "$publicKey",
                "idComercio": {"$first": "$commerce.clienteId"},
                "comercio": {"$first": "$commerce.comercio"},
                "isGateway": {"$first": "$commerce.gateway"},
                "createdAtMasAntiguo": {"$first": "$createdAt"},
                "epaycoImplementationType": {
                    "$first": {
                        "$cond": [
                            {"$regexMatch": {"input": "$correlationId", "regex": "legacy"}},
                            "legacy-api",
                            "handler",
                        ]
                    }
                },
                "V2": _count_where_id_type("objectId"),
                "V1": _count_where_id_type("string"),
                "total": {"$sum": 1},
                "horaEjecucion": {"$first": "$$NOW"},
                "transactionIds": {"$push": "$_id"},
                "transactionIdsAsString": {"$push": "$transactionIdAsString"},
            }
        },
        _webcheckout_lookup(),
        {"$addFields": {"webcheckoutInfo": {"$arrayElemAt": ["$webcheckoutData", 0]}}},
        {
            "$project": {
                "_id": 0,
                "publicKey": "$_id",
                "comercio": 1,
                "idComercio": 1,
                "isGateway": 1,
                "epaycoImplementationType": 1,
                "createdAtMasAntiguo": _format_date("$createdAtMasAntiguo"),
                "V2": 1,
                "V1": 1,
                "total": 1,
                "porcentajeV2": _percentage("$V2", "$total"),
                "porcentajeV1": _percentage("$V1", "$total"),
                "paymentMethodsStats": {
                    "$map": {
                        "input": {"$ifNull": ["$webcheckoutInfo.types", []]},
                        "as": "method",
                        "in": {
                            "type": "$$method.type",
                            "example": "$$method.exampleId",
                            "exampleDate": _format_date("$$method.exampleCreatedAt"),
                            "count": "$$method.count",
                            "percentage": _percentage(
                                "$$method.count",
                                {"$ifNull": ["$webcheckoutInfo.totalCount", 1]},
                            ),
                        },
                    }
                },
                "totalPaymentMethods": {"$ifNull": ["$webcheckoutInfo.totalCount", 0]},
                "horaEjecucion": _format_date("$horaEjecucion"),
            }
        },
    ]
