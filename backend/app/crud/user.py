# app/crud/user.py
"""
 - ユーザーレコードに関するドキュメントストア操作を定義するモジュール。
 - コレクション "users" のドキュメント（キー = ユーザーID）を pymongo で読み書きする。
 - 書き込みはすべてマージ（$set / $unset）で行い、無関係なフィールドを上書きしない。
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional
from pymongo.collection import Collection
from pymongo.errors import PyMongoError
from app.core.exceptions import PersistenceError

# ロガーの設定
logger = logging.getLogger(__name__)


class MongoUserRepository:
    """ユーザーレコードの永続化を担当するリポジトリ"""

    def __init__(self, collection: Collection):
        self.collection = collection

    def get_record(self, user_id: str) -> Optional[Dict[str, Any]]:
        """ユーザーIDでレコードを取得する。存在しなければNoneを返す。"""
        try:
            return self.collection.find_one({"_id": user_id})
        except PyMongoError as e:
            logger.error(f"ユーザーレコードの取得に失敗: user_id={user_id}, error={e}")
            raise PersistenceError(str(e)) from e

    def get_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        """メールアドレス（小文字化して比較）でレコードを取得する"""
        try:
            return self.collection.find_one({"email": email.strip().lower()})
        except PyMongoError as e:
            logger.error(f"メールアドレスでの検索に失敗: error={e}")
            raise PersistenceError(str(e)) from e

    def merge_record(
        self,
        user_id: str,
        fields: Dict[str, Any],
        unset: Iterable[str] = (),
        set_on_insert: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        レコードにフィールドをマージする（存在しなければ作成する）

        Args:
            user_id: ユーザーID
            fields: $set するフィールド
            unset: $unset するフィールド名
            set_on_insert: 新規作成時のみ設定するフィールド
        """
        update: Dict[str, Any] = {}
        if fields:
            update["$set"] = dict(fields)
        unset = list(unset)
        if unset:
            update["$unset"] = {name: "" for name in unset}
        if set_on_insert:
            update["$setOnInsert"] = dict(set_on_insert)
        if not update:
            return

        try:
            self.collection.update_one({"_id": user_id}, update, upsert=True)
        except PyMongoError as e:
            logger.error(f"ユーザーレコードの更新に失敗: user_id={user_id}, error={e}")
            raise PersistenceError(str(e)) from e

    def advance_counter(self, user_id: str, field: str, value: int) -> bool:
        """
        数値フィールドを value に進める（現在値が value 未満、または未設定の場合のみ）

        条件付きの update_one で1回だけ書き込むため、同じ値を同時に2回進めることはできない。

        Returns:
            bool: 更新できた場合True
        """
        try:
            result = self.collection.update_one(
                {
                    "_id": user_id,
                    "$or": [
                        {field: {"$exists": False}},
                        {field: None},
                        {field: {"$lt": value}},
                    ],
                },
                {"$set": {field: value}},
            )
        except PyMongoError as e:
            logger.error(f"ユーザーレコードの更新に失敗: user_id={user_id}, error={e}")
            raise PersistenceError(str(e)) from e
        return result.modified_count == 1


def upsert_user_on_login(repo, user: Dict[str, Any]) -> None:
    """
    ログイン時にユーザーレコードを整える。

    既存レコードのmfaSecretには触れない。新規作成時のみ初期値を入れる。
    """
    now = datetime.now(timezone.utc)
    user_id = user["_id"]
    repo.merge_record(
        user_id,
        {
            "uid": user_id,
            "email": (user.get("email") or "").lower(),
            "updatedAt": now,
        },
        set_on_insert={
            "createdAt": now,
            "isEnabled": True,
            "role": "user",
            "mfaSecret": None,
        },
    )
