from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List
from urllib.parse import urlparse, urlunparse

import pymongo
from pymongo import MongoClient, UpdateOne
from pymongo.errors import BulkWriteError, PyMongoError

from .records import PrecipRecord, identity_key, record_hash

logger = logging.getLogger("pluviorn.mongo")

DEFAULT_BATCH_SIZE = 500


def redact_mongo_uri(uri: str) -> str:
    """
    Evite d'afficher user:password dans les logs.
    """
    p = urlparse(uri)
    if not (p.username or p.password):
        return uri
    netloc = p.hostname or ""
    if p.port:
        netloc += f":{p.port}"
    if p.username:
        netloc = f"{p.username}:***@{netloc}"
    return urlunparse((p.scheme, netloc, p.path, p.params, p.query, p.fragment))


def connect_mongo(uri: str) -> MongoClient:
    client = MongoClient(uri, serverSelectionTimeoutMS=5000)
    try:
        client.admin.command("ping")
    except PyMongoError:
        client.close()
        raise
    return client


def create_indexes(collection) -> None:
    collection.create_index([("record_hash", pymongo.ASCENDING)], unique=True, name="idx_record_hash")
    collection.create_index(
        [("source", pymongo.ASCENDING), ("horas", pymongo.ASCENDING)], name="idx_source_horas"
    )


def to_document(r: PrecipRecord, ingestion_ts: datetime) -> Dict[str, Any]:
    doc = r.to_dict()
    doc["identity_key"] = identity_key(r)
    doc["record_hash"] = record_hash(r)
    doc["ingestion_ts"] = ingestion_ts
    return doc


def upsert_records(collection, records: Iterable[PrecipRecord], batch_size: int = DEFAULT_BATCH_SIZE) -> Dict[str, int]:
    """
    Upsert par record_hash : relancer un run ne crée pas de doublons,
    la dernière valeur observée écrase la précédente.
    """
    stats = {"submitted": 0, "upserted": 0, "modified": 0, "errors": 0}
    now = datetime.now(timezone.utc)

    batch: List[UpdateOne] = []

    def flush() -> None:
        if not batch:
            return
        stats["submitted"] += len(batch)
        try:
            res = collection.bulk_write(batch, ordered=False)
            stats["upserted"] += res.upserted_count
            stats["modified"] += res.modified_count
        except BulkWriteError as bwe:
            errors = bwe.details.get("writeErrors", [])
            stats["errors"] += len(errors)
            stats["upserted"] += bwe.details.get("nUpserted", 0)
            stats["modified"] += bwe.details.get("nModified", 0)
            logger.warning("Batch: %s erreurs d'écriture", len(errors))
        batch.clear()

    for r in records:
        doc = to_document(r, now)
        batch.append(UpdateOne({"record_hash": doc["record_hash"]}, {"$set": doc}, upsert=True))
        if len(batch) >= batch_size:
            flush()
    flush()

    logger.info(f"MongoDB: {stats}")
    return stats


def load_records(uri: str, db_name: str, collection_name: str, records: List[PrecipRecord]) -> Dict[str, int]:
    logger.info("Mongo: %s | %s.%s", redact_mongo_uri(uri), db_name, collection_name)
    client = None
    try:
        client = connect_mongo(uri)
        collection = client[db_name][collection_name]
        create_indexes(collection)
        return upsert_records(collection, records)
    except PyMongoError as e:
        logger.error("Erreur MongoDB (%s)", str(e)[:200])
        raise
    finally:
        if client is not None:
            client.close()
