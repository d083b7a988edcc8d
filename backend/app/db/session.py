"""
ドキュメントストア（MongoDB互換）への接続を管理するモジュール
"""

import logging
from typing import Generator, Optional
from pymongo import MongoClient
from pymongo.database import Database
from app.core.config import settings

# ロガーの設定
logger = logging.getLogger(__name__)

_client: Optional[MongoClient] = None

def get_client() -> MongoClient:
    """MongoClientを取得する。未初期化なら遅延生成する。"""
    global _client
    if _client is None:
        _client = MongoClient(
            settings.mongo_connection_string,
            serverSelectionTimeoutMS=settings.mongo_timeout_ms,
        )
        logger.info("MongoClientを初期化しました: database=%s", settings.mongo_database_name)
    return _client

def get_database() -> Database:
    return get_client()[settings.mongo_database_name]

def close_client() -> None:
    """アプリ終了時に接続を閉じる"""
    global _client
    if _client is not None:
        _client.close()
        _client = None

def get_db() -> Generator[Database, None, None]:
    """
    データベースハンドルを取得する依存関係

    Yields:
        Database: pymongoのDatabase
    """
    yield get_database()
