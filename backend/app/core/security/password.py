"""
 - 一次認証（メールアドレス＋パスワード）で使うパスワード照合モジュール。
 - パスワードは平文で保存せず、bcrypt ハッシュとしてユーザーレコードに保持する。
"""

from passlib.context import CryptContext
import logging

# ロガーの設定
logger = logging.getLogger(__name__)

# bcryptアルゴリズムを使用するハッシュコンテキストを定義
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

def hash_password(password: str) -> str:
    return pwd_context.hash(password)

def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    平文パスワードとハッシュ化されたパスワードを比較して検証する関数

    ハッシュが空・壊れている場合は False を返す。
    """
    if not plain_password or not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError as e:
        logger.error(f"パスワードハッシュを解釈できません: {e}")
        return False
