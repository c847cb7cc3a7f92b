"""
dice_temple.core.config
~~~~~~~~~~~~~~~~~~~~~~~

集中式配置管理，基于 pydantic-settings 自动从 ``.env`` 文件加载。

支持多环境配置（dev / test / prod），加载顺序为:
  1. 环境变量（最高优先级）
  2. ``.env.{ENVIRONMENT}`` 环境专属文件
  3. ``.env`` 基础文件
  4. 字段默认值（最低优先级）
"""
from __future__ import annotations

import os
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# 读取当前环境标识（在 Settings 类定义之前，用于决定加载哪个 .env 文件）
_CURRENT_ENV: str = os.getenv("ENVIRONMENT", "dev")


class Settings(BaseSettings):
    """全局配置对象，字段值按如下优先级加载：环境变量 > .env.{env} > .env > 默认值。"""

    # ── 基础 ──────────────────────────────────────────────────────────
    PROJECT_NAME: str = Field(default="Dice Temple", description="项目名称")
    VERSION: str = Field(default="0.1.0", description="版本号")
    ENVIRONMENT: Literal["dev", "test", "prod"] = Field(
        default="dev",
        description="运行环境：dev / test / prod",
    )

    # ── 房间 ──────────────────────────────────────────────────────────
    DM_SECRET: str | None = Field(
        default=None,
        description="DM 加入房间所需的共享密钥；未配置时任何 DM 都无法加入",
    )
    DEFAULT_ROOM_ID: str = Field(
        default="temple",
        description="``/ws`` 端点使用的默认房间 ID",
    )

    # ── 服务 ──────────────────────────────────────────────────────────
    HOST: str = Field(default="0.0.0.0", description="服务监听地址")
    PORT: int = Field(default=3000, description="服务监听端口")
    LOG_LEVEL: str = Field(default="INFO", description="日志级别（可被环境属性覆盖）")
    CORS_ORIGINS: list[str] = Field(
        default=["*"],
        description="允许跨域访问的前端来源（JSON 数组）",
    )

    # ── Pydantic Settings ─────────────────────────────────────────────
    # 先加载 .env.{env} 再加载 .env，前者优先级更高
    model_config = SettingsConfigDict(
        env_file=(f".env.{_CURRENT_ENV}", ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── 环境差异化行为 ────────────────────────────────────────────────

    @property
    def is_prod(self) -> bool:
        """当前是否为生产环境（决定是否向客户端隐藏内部错误细节）。"""
        return self.ENVIRONMENT == "prod"

    @property
    def debug(self) -> bool:
        """是否开启 debug 模式与热重载。仅 dev 环境开启。"""
        return self.ENVIRONMENT == "dev"

    @property
    def effective_log_level(self) -> str:
        """根据环境推断日志级别（test → DEBUG，prod → WARNING，dev → LOG_LEVEL）。

        环境变量中显式设置的 LOG_LEVEL 优先。
        """
        env_log = os.getenv("LOG_LEVEL")
        if env_log:
            return env_log
        return {"test": "DEBUG", "prod": "WARNING"}.get(self.ENVIRONMENT, self.LOG_LEVEL)


@lru_cache
def get_settings() -> Settings:
    """获取全局 Settings 单例（带缓存，避免重复解析 .env）。"""
    return Settings()


settings: Settings = get_settings()
