from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.exception_handlers import http_exception_handler, request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging
from app.api.routes import auth
from app.core.startup import init_external_services, shutdown_external_services
from app.core.security.mfa.router import router as mfa_router, verify_router as mfa_verify_router
from app.core.security.cors import get_cors_middleware_config, get_cors_config
from app.core.config import get_settings

# ロガーの設定
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_external_services()
    yield
    await shutdown_external_services()

app = FastAPI(title="Bickers Booking API", lifespan=lifespan)

# 環境別CORS設定
app.add_middleware(CORSMiddleware, **get_cors_middleware_config())

settings = get_settings()
logger.info(f"環境: {settings.environment}")
logger.info(f"CORS設定: {get_cors_config()}")

@app.exception_handler(StarletteHTTPException)
async def method_not_allowed_handler(request: Request, exc: StarletteHTTPException):
    """405だけは {"error": ...} 形式で返す。それ以外は既定の処理。"""
    if exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": "Method not allowed"},
            headers=getattr(exc, "headers", None),
        )
    return await http_exception_handler(request, exc)

@app.exception_handler(RequestValidationError)
async def verify_mfa_validation_handler(request: Request, exc: RequestValidationError):
    """/verify-mfa の入力エラーも {"error": ...} 形式で返す。それ以外は既定の処理。"""
    if request.url.path.rstrip("/").endswith("/verify-mfa"):
        fields = sorted({str(err["loc"][-1]) for err in exc.errors() if err.get("loc")})
        message = f"Invalid request: {', '.join(fields)}" if fields else "Invalid request"
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"error": message},
        )
    return await request_validation_exception_handler(request, exc)

""" ----------
 ルーター登録
---------- """
# 一次認証API（ログイン・ログアウト）
app.include_router(auth.router, prefix="/api")

# MFA関連API（登録・状態・解除）
app.include_router(mfa_router, prefix="/api")

# MFAコード検証API
app.include_router(mfa_verify_router, prefix="/api")


@app.get("/")
def root():
    return {"message": "Bickers Booking"}

@app.get("/health")
def health_check():
    return {"status": "healthy"}
