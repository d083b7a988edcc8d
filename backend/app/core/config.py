from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from dotenv import load_dotenv
import logging
from pathlib import Path

# ロガーの設定
logger = logging.getLogger(__name__)

load_dotenv()

# プロジェクトルート基準の絶対パスを取得
# このファイルは `backend/app/core/config.py` にあるため、backend ディレクトリは2つ上
BASE_DIR = Path(__file__).resolve().parent.parent

# .envファイルの絶対パスを明示的に設定
ENV_FILE_PATH = BASE_DIR.parent / ".env"

class Settings(BaseSettings):
    # 認証
    secret_key: str = Field(default="your-secret-key-here-make-it-long-and-secure", alias="SECRET_KEY")
    algorithm: str = Field(default="HS256", alias="ALGORITHM")
    access_token_expire_minutes: int = Field(default=30, alias="ACCESS_TOKEN_EXPIRE_MINUTES")
    # 一次認証後、MFAコード入力待ちの間だけ使える短命トークン
    mfa_pending_token_expire_minutes: int = Field(default=5, alias="MFA_PENDING_TOKEN_EXPIRE_MINUTES")
    # ログインを許可するメールドメイン（空文字なら制限しない）
    allowed_email_domain: str = Field(default="bickers.co.uk", alias="ALLOWED_EMAIL_DOMAIN")

    # ドキュメントストア（MongoDB互換）
    mongo_connection_string: str = Field(default="mongodb://localhost:27017", alias="MONGO_CONNECTION_STRING")
    mongo_database_name: str = Field(default="bickers_booking", alias="MONGO_DATABASE_NAME")
    mongo_users_collection: str = Field(default="users", alias="MONGO_USERS_COLLECTION")
    mongo_audit_collection: str = Field(default="audit_logs", alias="MONGO_AUDIT_COLLECTION")
    mongo_timeout_ms: int = Field(default=5000, alias="MONGO_TIMEOUT_MS")

    # CORS設定（文字列として受け取り、手動でパース）
    cors_allow_origins_str: str = Field(
        default="http://localhost:3000",
        alias="CORS_ALLOW_ORIGINS"
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods_str: str = Field(
        default="GET,POST,OPTIONS",
        alias="CORS_ALLOW_METHODS"
    )
    cors_allow_headers_str: str = Field(
        default="*",
        alias="CORS_ALLOW_HEADERS"
    )
    cors_max_age: int = Field(default=86400, alias="CORS_MAX_AGE")  # 24時間

    # 環境設定
    environment: str = Field(default="development", alias="ENVIRONMENT")

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE_PATH),
        extra="ignore",  # 未定義の環境変数は無視
        populate_by_name=True,
    )

    def get_mongo_config(self) -> dict:
        """ドキュメントストアの設定を取得"""
        return {
            "connection_string": self.mongo_connection_string,
            "database_name": self.mongo_database_name,
            "users_collection": self.mongo_users_collection,
            "audit_collection": self.mongo_audit_collection,
            "timeout_ms": self.mongo_timeout_ms,
        }

    @property
    def is_production(self) -> bool:
        """本番環境かどうかを判定"""
        return self.environment.lower() in ["production", "prod"]

    @property
    def is_development(self) -> bool:
        """開発環境かどうかを判定"""
        return self.environment.lower() in ["development", "dev"]

    @property
    def cors_allow_origins(self) -> list[str]:
        """CORSオリジンのリストを取得"""
        return [origin.strip() for origin in self.cors_allow_origins_str.split(",")]

    @property
    def cors_allow_methods(self) -> list[str]:
        """CORSメソッドのリストを取得"""
        return [method.strip() for method in self.cors_allow_methods_str.split(",")]

    @property
    def cors_allow_headers(self) -> list[str]:
        """CORSヘッダーのリストを取得"""
        if self.cors_allow_headers_str == "*":
            return ["*"]
        return [header.strip() for header in self.cors_allow_headers_str.split(",")]

    def get_cors_origins(self) -> list[str]:
        """環境に応じたCORSオリジンを取得"""
        if self.is_production:
            if self.cors_allow_origins_str and "localhost" not in self.cors_allow_origins_str:
                return self.cors_allow_origins
            logger.warning("本番環境でCORS_ALLOW_ORIGINSが設定されていません")
            return []
        # 開発環境
        return [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ] + [o for o in self.cors_allow_origins if o not in ("http://localhost:3000", "http://127.0.0.1:3000")]

settings = Settings()

logger.info("Loaded settings: environment=%s, database=%s", settings.environment, settings.mongo_database_name)

@lru_cache
def get_settings() -> Settings:
    return settings
