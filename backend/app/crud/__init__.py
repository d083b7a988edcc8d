from .user import MongoUserRepository, upsert_user_on_login


__all__ = [
    "MongoUserRepository",
    "upsert_user_on_login"
]
