import logging
from pymongo.errors import PyMongoError
from app.db.session import get_client, close_client

# ロガーの設定
logger = logging.getLogger(__name__)

__all__ = ["init_external_services", "shutdown_external_services"]

async def init_external_services():
    """ドキュメントストアへの疎通を確認する。失敗しても起動は継続する。"""
    try:
        get_client().admin.command("ping")
        logger.info("✅ ドキュメントストアへの接続を確認しました")
    except PyMongoError as e:
        # 起動時点で到達できなくても、各リクエストでPersistenceErrorとして扱う
        logger.error(f"ドキュメントストアに接続できません: {e}")

async def shutdown_external_services():
    close_client()
    logger.info("ドキュメントストアの接続を閉じました")
