# paperproxy/core/config.py

"""
全局配置模块 (Global Configuration Module)

功能 (Function):
这个文件是 PaperProxy 后端的配置中心。它负责：
1. 定义所有配置项，例如 NCBI EUtils 基础地址、请求超时、NCBI API key / email、
   支持的数据库列表、分页上限以及日志相关选项。
2. 使用 Pydantic Settings 从环境变量和项目根目录的 `.env` 文件加载配置值。
3. 对加载的配置进行类型检查和基本的验证。
4. 提供一个全局可访问、不可变的 `settings` 对象，在应用启动时创建一次，
   通过依赖注入传递给各个服务，而不是在每个请求中重新创建。

交互 (Interaction):
- 读取 (Reads): `.env` 文件 (如果存在) 和系统环境变量。
- 被导入 (Imported by):
    - `paperproxy.main`: 应用标题、API 前缀、CORS、uvicorn 启动参数。
    - `paperproxy.core.http`: 创建共享 httpx 客户端时读取超时时间。
    - `paperproxy.logging_config`: 日志级别与日志目录。
    - `paperproxy.api.v1.dependencies`: 构建仓库与服务实例。
    - `tests/*`: 测试中直接实例化 `Settings(...)` 覆盖配置。
"""

import os
from typing import List, Literal, Optional

from loguru import logger
from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# 计算项目根目录和 .env 文件路径
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
dotenv_path = os.path.join(project_root, ".env")

logger.debug(f"Calculated .env path for Pydantic Settings: {dotenv_path}")


class Settings(BaseSettings):
    """
    应用配置模型 (Application Settings Model)

    字段名与环境变量通过 `alias` 对应；实例被冻结 (frozen)，运行期间不可修改。
    """

    model_config = SettingsConfigDict(
        env_file=dotenv_path if os.path.exists(dotenv_path) else None,
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
        frozen=True,
    )

    # --- 常规配置 (General Settings) ---
    project_name: str = Field(default="PaperProxy", alias="PROJECT_NAME")
    api_prefix: str = Field(default="/api", alias="API_PREFIX")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", alias="LOG_LEVEL"
    )
    environment: str = Field(default="development", alias="ENVIRONMENT")

    # --- uvicorn 启动参数 ---
    api_host: str = Field(default="0.0.0.0", alias="API_HOST")
    api_port: int = Field(default=5000, alias="API_PORT")
    api_reload: bool = Field(default=False, alias="API_RELOAD")

    # --- 日志输出 ---
    log_to_file: bool = Field(default=False, alias="LOG_TO_FILE")
    log_dir: str = Field(default=os.path.join(project_root, "logs"), alias="LOG_DIR")
    log_utc_offset_hours: int = Field(default=8, alias="LOG_UTC_OFFSET_HOURS")

    # --- NCBI EUtils ---
    ncbi_eutils_base_url: str = Field(
        default="https://eutils.ncbi.nlm.nih.gov/entrez/eutils",
        alias="NCBI_EUTILS_BASE_URL",
    )
    # 出站请求的固定超时 (秒)，超时即失败，没有重试
    ncbi_timeout_sec: float = Field(default=30.0, gt=0.0, alias="NCBI_TIMEOUT_SEC")
    ncbi_api_key: Optional[str] = Field(default=None, alias="NCBI_API_KEY")
    ncbi_email: Optional[str] = Field(default=None, alias="NCBI_EMAIL")
    ncbi_tool: Optional[str] = Field(default="paperproxy", alias="NCBI_TOOL")

    # --- 请求参数策略 ---
    supported_databases: List[str] = Field(
        default_factory=lambda: ["pubmed", "pmc"], alias="SUPPORTED_DATABASES"
    )
    default_db: str = Field(default="pmc", alias="DEFAULT_DB")
    default_retmax: int = Field(default=10, ge=1, alias="DEFAULT_RETMAX")
    max_retmax: int = Field(default=10000, ge=1, alias="MAX_RETMAX")

    @field_validator("ncbi_api_key", "ncbi_email", "ncbi_tool", mode="before")
    @classmethod
    def check_not_empty(
        cls, value: Optional[str], info: ValidationInfo
    ) -> Optional[str]:
        """
        环境变量被设置为空字符串 (e.g., NCBI_API_KEY="") 时视为未设置，
        避免把空参数附加到 EUtils 请求上。
        """
        if isinstance(value, str) and value.strip() == "":
            logger.warning(
                f"Configuration field '{info.field_name}' was set to an empty string. "
                f"Treating as None (not set)."
            )
            return None
        return value

    @field_validator("api_prefix")
    @classmethod
    def normalize_prefix(cls, value: str) -> str:
        value = "/" + value.strip("/")
        return "" if value == "/" else value


try:
    settings = Settings()
    logger.info("Settings loaded successfully.")
    logger.debug(f"Project Name: {settings.project_name}")
    logger.debug(f"Environment: {settings.environment}")
    logger.debug(f"EUtils base URL: {settings.ncbi_eutils_base_url}")
    logger.debug(f"Supported databases: {settings.supported_databases}")
except Exception as e:
    logger.critical(f"Failed to load or validate settings: {e}")
    raise

if not settings.ncbi_api_key:
    logger.warning(
        "NCBI_API_KEY is not set; EUtils limits anonymous clients to 3 requests/second."
    )
