# -*- coding: utf-8 -*-
"""
访问令牌存储

使用 Fernet 对称加密（AES-128-CBC + HMAC）把 bearer token 保存在本地。
环境变量 LOCALJUDGE_TOKEN 优先于已保存的值。
"""

import os
from pathlib import Path
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken
from loguru import logger

from .exceptions import CredentialError
from .unified_config import localjudge_home


TOKEN_ENV = "LOCALJUDGE_TOKEN"
KEY_ENV = "LOCALJUDGE_ENCRYPTION_KEY"


def _write_private(path: Path, data: bytes) -> None:
    """创建时即为 0600，避免写入期间被其他用户读取"""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "wb") as f:
        f.write(data)
    try:
        path.chmod(0o600)
    except OSError:
        pass  # Windows


class CredentialStore:
    """
    单个 bearer token 的本地存储

    运行期间只读；login/logout 命令在两次运行之间替换它。
    """

    TOKEN_FILE = "credentials"
    KEY_FILE = "credentials.key"

    def __init__(self, home: Optional[Path] = None):
        self.home = Path(home) if home else localjudge_home()
        self._cipher: Optional[Fernet] = None

    @property
    def token_path(self) -> Path:
        return self.home / self.TOKEN_FILE

    @property
    def key_path(self) -> Path:
        return self.home / self.KEY_FILE

    @property
    def cipher(self) -> Fernet:
        """获取加密器（懒加载）"""
        if self._cipher is not None:
            return self._cipher

        # 1. 环境变量
        key = os.getenv(KEY_ENV)
        if key:
            try:
                self._cipher = Fernet(key.encode())
                return self._cipher
            except ValueError as exc:
                raise CredentialError(f"{KEY_ENV} is not a valid Fernet key") from exc

        # 2. 密钥文件
        if self.key_path.exists():
            try:
                self._cipher = Fernet(self.key_path.read_bytes().strip())
                return self._cipher
            except ValueError as exc:
                raise CredentialError(f"key file {self.key_path} is corrupted") from exc

        # 3. 生成新密钥
        new_key = Fernet.generate_key()
        _write_private(self.key_path, new_key)
        logger.info(f"[Credential] 生成新的加密密钥: {self.key_path}")
        self._cipher = Fernet(new_key)
        return self._cipher

    def get(self) -> Optional[str]:
        """读取 token，未保存时返回 None"""
        env_token = os.getenv(TOKEN_ENV)
        if env_token and env_token.strip():
            return env_token.strip()

        if not self.token_path.exists():
            return None

        try:
            token = self.cipher.decrypt(self.token_path.read_bytes().strip()).decode("utf-8")
        except InvalidToken as exc:
            raise CredentialError("stored token cannot be decrypted; run `localjudge login` again") from exc
        return token or None

    def set(self, token: str) -> None:
        """保存 token（去除首尾空白）"""
        token = (token or "").strip()
        if not token:
            raise CredentialError("token must not be empty")
        _write_private(self.token_path, self.cipher.encrypt(token.encode("utf-8")))
        logger.info("[Credential] token 已保存")

    def clear(self) -> bool:
        """删除已保存的 token，返回是否确实删除了"""
        if self.token_path.exists():
            self.token_path.unlink()
            logger.info("[Credential] token 已删除")
            return True
        return False

    def get_credential(self) -> Optional[str]:
        return self.get()
