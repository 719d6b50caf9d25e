"""
密码工具类
提供密码加密、校验以及长度规则
"""
import bcrypt
from typing import Optional
from loguru import logger


class PasswordUtils:
    """密码工具类"""

    MIN_PASSWORD_LENGTH = 8

    def hash_password(self, plain_password: str) -> str:
        """
        生成加密后的密码

        Args:
            plain_password: 明文密码

        Returns:
            str: bcrypt 哈希值
        """
        if not plain_password:
            raise ValueError("密码不能为空")
        return bcrypt.hashpw(plain_password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")

    def verify_password(self, plain_password: str, hashed_password: Optional[str]) -> bool:
        """验证密码，未设置密码的账号一律校验失败"""
        if not plain_password or not hashed_password:
            return False
        try:
            return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
        except ValueError as e:
            logger.error(f"密码哈希格式错误: {e}")
            return False

    def check_strength(self, plain_password: Optional[str]) -> None:
        """密码长度校验，不满足时抛出 ValueError"""
        if not plain_password or len(plain_password) < self.MIN_PASSWORD_LENGTH:
            raise ValueError(f"密码长度至少为 {self.MIN_PASSWORD_LENGTH} 位")


# 创建全局实例
password_utils = PasswordUtils()
