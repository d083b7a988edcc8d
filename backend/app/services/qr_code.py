"""
QRコード生成サービス
"""

import base64
import logging
from io import BytesIO

import qrcode

from app.core.security.mfa.config import mfa_config

# ロガーの設定
logger = logging.getLogger(__name__)

class QRCodeService:
    """QRコード生成を担当するサービスクラス"""

    @staticmethod
    def generate_totp_qr(
        provisioning_uri: str,
        box_size: int = None,
        border: int = None,
    ) -> str:
        """
        プロビジョニングURIを認証アプリで読み取れるQRコードにする

        Args:
            provisioning_uri: otpauth:// 形式のURI
            box_size: QRコードのボックスサイズ
            border: ボーダーサイズ

        Returns:
            PNG画像のdata URL
        """
        if not provisioning_uri.startswith("otpauth://"):
            raise ValueError("provisioning_uri must be an otpauth:// URI")

        # QRコードを生成（URIの長さに合わせてバージョンは自動決定）
        qr = qrcode.QRCode(
            version=None,
            box_size=box_size or mfa_config.qr_box_size,
            border=border if border is not None else mfa_config.qr_border,
        )
        qr.add_data(provisioning_uri)
        qr.make(fit=True)

        # 画像を生成
        img = qr.make_image(fill_color="black", back_color="white")

        # base64エンコード
        buffer = BytesIO()
        img.save(buffer, format="PNG")
        img_str = base64.b64encode(buffer.getvalue()).decode()

        return f"data:image/png;base64,{img_str}"
