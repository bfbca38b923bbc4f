"""
MongoDB connection for the Cut Match API.

One client is shared by the whole process. Handlers receive the database
through the ``get_db`` dependency so tests can swap it for an in-memory one.
"""

import logging

from pymongo import ASCENDING, GEOSPHERE, MongoClient

from config import DATABASE_NAME, DATABASE_URL

logger = logging.getLogger(__name__)

client = MongoClient(DATABASE_URL, tz_aware=True)
db = client[DATABASE_NAME]


def get_db():
    return db


def ensure_indexes(database) -> None:
    database["user"].create_index([("email", ASCENDING)], unique=True)
    database["salon"].create_index([("location", GEOSPHERE)])
    database["post"].create_index([("author", ASCENDING), ("created_at", ASCENDING)])
    database["comment"].create_index([("post", ASCENDING), ("parent_comment", ASCENDING)])
    database["comment"].create_index([("parent_comment", ASCENDING)])
    database["review"].create_index([("hairstyle", ASCENDING), ("user", ASCENDING)])
    database["notification"].create_index([("recipient", ASCENDING), ("created_at", ASCENDING)])
    logger.info("Indexes ensured on database %s", database.name)
