# =============================================================================
# 模块: settings.py
# 功能: FeedPulse 的全局应用配置模块
# 架构角色: 作为整个应用的配置中枢，提供统一的配置管理。
#   采用分层配置优先级机制，从高到低依次为：
#   1. 命令行参数（由 main.run 以初始化参数传入）
#   2. --config 指定的 YAML 文件
#   3. 环境变量 / .env 文件（存放敏感信息如 JWT 密钥）
#   4. config/defaults.yaml（非敏感默认值）
#   5. Python 代码中的硬编码默认值（兜底方案）
#
# 设计决策:
#   - 使用 pydantic-settings 的 BaseSettings 实现类型安全的配置
#   - YAML 文件在模块加载时一次性读取并缓存到模块级变量中
#   - YAML 段名 + 键名拼接即为字段名（如 sync.interval_minutes -> sync_interval_minutes），
#     因此 --config 文件可以直接映射到字段
# =============================================================================
"""Global application settings for FeedPulse.

Configuration precedence (highest to lowest):
1. CLI flags (init kwargs)
2. ``--config`` YAML file
3. Environment variables / .env file
4. config/defaults.yaml
5. Hardcoded Python defaults
"""

from __future__ import annotations

import secrets
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# 项目根目录（settings.py 所在目录）
BASE_DIR = Path(__file__).resolve().parent
# 配置文件目录
CONFIG_DIR = BASE_DIR / "config"


def load_yaml_config(config_path: Optional[Path] = None) -> dict:
    """Load configuration from a YAML file (defaults.yaml by default).

    从 YAML 配置文件加载配置。
    如果文件不存在则返回空字典，不会抛出异常。

    返回值:
        dict: YAML 文件内容解析后的字典，文件不存在或为空时返回 {}
    """
    config_path = config_path or CONFIG_DIR / "defaults.yaml"
    if not config_path.exists():
        return {}
    with open(config_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


# 模块加载时一次性读取 YAML 配置并缓存
_yaml_config = load_yaml_config()
_app_config = _yaml_config.get("app", {})            # 应用基本配置
_cors_config = _yaml_config.get("cors", {})          # 跨域配置
_db_config = _yaml_config.get("database", {})        # 数据库配置
_jwt_config = _yaml_config.get("jwt", {})            # JWT 认证配置
_sync_config = _yaml_config.get("sync", {})          # 订阅同步配置
_http_config = _yaml_config.get("http", {})          # 出站 HTTP 配置
_auth_config = _yaml_config.get("auth", {})          # 注册与管理员配置
_superuser_config = _yaml_config.get("superuser", {})
_log_config = _yaml_config.get("log", {})            # 日志配置


class Settings(BaseSettings):
    """Global application settings."""

    # ======================== 应用基本配置 ========================
    app_name: str = Field(
        default=_app_config.get("name", "FeedPulse"),
        validation_alias="APP_NAME",
    )
    debug: bool = Field(
        default=_app_config.get("debug", False),
        validation_alias="DEBUG",
    )
    app_host: str = Field(
        default=_app_config.get("host", "0.0.0.0"),
        validation_alias="APP_HOST",
    )
    app_port: int = Field(
        default=_app_config.get("port", 8080),
        validation_alias="APP_PORT",
    )
    # 允许的跨域来源，逗号分隔，"*" 表示全部
    cors_origins: str = Field(
        default=_cors_config.get("origins", "*"),
        validation_alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(
        default=_cors_config.get("allow_credentials", False),
        validation_alias="CORS_ALLOW_CREDENTIALS",
    )

    # ======================== 数据库配置 ========================
    # 默认使用 SQLite（aiosqlite 驱动），也可配置为 mysql+aiomysql://...
    database_url: str = Field(
        default=_db_config.get("url", "sqlite+aiosqlite:///./data/feedpulse.db"),
        validation_alias="DATABASE_URL",
    )
    database_echo: bool = Field(
        default=_db_config.get("echo", False),
        validation_alias="DATABASE_ECHO",
    )
    # 连接池参数仅对非 SQLite 数据库生效
    database_pool_size: int = Field(
        default=_db_config.get("pool_size", 10),
        validation_alias="DATABASE_POOL_SIZE",
    )
    database_max_overflow: int = Field(
        default=_db_config.get("max_overflow", 20),
        validation_alias="DATABASE_MAX_OVERFLOW",
    )
    database_pool_recycle: int = Field(
        default=_db_config.get("pool_recycle", 3600),
        validation_alias="DATABASE_POOL_RECYCLE",
    )

    # ======================== JWT 认证配置 ========================
    # JWT 密钥：为空时自动生成随机密钥（见下方 validator）
    jwt_secret_key: str = Field(
        default="",
        validation_alias="JWT_SECRET_KEY",
        validate_default=True,
    )
    jwt_algorithm: str = Field(
        default=_jwt_config.get("algorithm", "HS256"),
        validation_alias="JWT_ALGORITHM",
    )
    # 访问令牌过期时间（分钟），默认 3 天
    jwt_access_token_expire_minutes: int = Field(
        default=_jwt_config.get("access_token_expire_minutes", 4320),
        validation_alias="JWT_ACCESS_TOKEN_EXPIRE_MINUTES",
    )
    # 刷新令牌过期时间（天）
    jwt_refresh_token_expire_days: int = Field(
        default=_jwt_config.get("refresh_token_expire_days", 7),
        validation_alias="JWT_REFRESH_TOKEN_EXPIRE_DAYS",
    )

    # ======================== 订阅同步配置 ========================
    sync_enabled: bool = Field(
        default=_sync_config.get("enabled", True),
        validation_alias="SYNC_ENABLED",
    )
    # 同步周期（分钟），同时也是单个订阅的刷新间隔
    sync_interval_minutes: float = Field(
        default=_sync_config.get("interval_minutes", 15),
        validation_alias="SYNC_INTERVAL_MINUTES",
        ge=0,
    )
    # 同时处理的最大用户数
    sync_max_parallel_users: int = Field(
        default=_sync_config.get("max_parallel_users", 100),
        validation_alias="SYNC_MAX_PARALLEL_USERS",
        ge=1,
    )
    sync_feed_page_size: int = Field(
        default=_sync_config.get("feed_page_size", 100),
        validation_alias="SYNC_FEED_PAGE_SIZE",
        ge=1,
    )
    # 条目保留天数，0 表示不清理
    sync_delete_after_days: int = Field(
        default=_sync_config.get("delete_after_days", 0),
        validation_alias="SYNC_DELETE_AFTER_DAYS",
        ge=0,
    )

    # ======================== 出站 HTTP 配置 ========================
    http_timeout: float = Field(
        default=_http_config.get("timeout", 10.0),
        validation_alias="HTTP_TIMEOUT",
        gt=0,
    )
    http_user_agent: str = Field(
        default=_http_config.get("user_agent", "FeedPulse/1.0"),
        validation_alias="HTTP_USER_AGENT",
    )

    # ======================== 账户配置 ========================
    allow_registration: bool = Field(
        default=_auth_config.get("allow_registration", True),
        validation_alias="ALLOW_REGISTRATION",
    )
    # 启动时自动创建的管理员账户，用户名为空则跳过
    superuser_username: str = Field(
        default=_superuser_config.get("username", ""),
        validation_alias="SUPERUSER_USERNAME",
    )
    superuser_password: str = Field(
        default="",
        validation_alias="SUPERUSER_PASSWORD",
    )

    # ======================== 日志配置 ========================
    log_level: str = Field(
        default=_log_config.get("level", "INFO"),
        validation_alias="LOG_LEVEL",
    )
    log_file: Optional[Path] = Field(
        default=_log_config.get("file"),
        validation_alias="LOG_FILE",
    )

    # pydantic-settings 的模型配置
    # populate_by_name: 允许以字段名传入初始化参数（命令行覆盖使用）
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("jwt_secret_key", mode="before")
    @classmethod
    def generate_jwt_secret_if_empty(cls, v: str) -> str:
        """Generate a random JWT secret if not provided.

        JWT 密钥验证器：如果未提供有效的密钥，则自动生成一个随机密钥。
        自动生成的密钥在每次重启时都会变化，之前签发的 Token 将全部失效。
        """
        if not v or v == "your_jwt_secret_key_here":
            return secrets.token_urlsafe(32)
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        levels = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}
        if v.upper() not in levels:
            raise ValueError(f"log_level must be one of {sorted(levels)}")
        return v.upper()

    @property
    def cors_origins_list(self) -> List[str]:
        """Return CORS origins as a list.

        将逗号分隔的来源字符串转换为列表，"*" 原样保留。
        """
        if self.cors_origins.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


def flatten_yaml_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """Map a sectioned YAML document onto ``Settings`` field names.

    段名与键名拼接后若为字段名则直接使用（sync.interval_minutes），
    否则退回键名本身（app.debug -> debug, auth.allow_registration）。
    未知键会被忽略。

    Args:
        config: Parsed YAML mapping.

    Returns:
        Dict[str, Any]: Field-name keyed values.
    """
    fields = Settings.model_fields
    flat: Dict[str, Any] = {}
    for section, values in config.items():
        if not isinstance(values, dict):
            if section in fields:
                flat[section] = values
            continue
        for key, value in values.items():
            name = f"{section}_{key}"
            if name in fields:
                flat[name] = value
            elif key in fields:
                flat[key] = value
    return flat


def load_settings(config_path: Optional[Path] = None, **overrides: Any) -> Settings:
    """Build settings from an optional YAML file plus explicit overrides.

    Args:
        config_path: Extra YAML file layered above env and defaults.
        **overrides: Field values (``None`` values are ignored).

    Returns:
        Settings: Validated settings instance.

    Raises:
        FileNotFoundError: If ``config_path`` does not exist.
        pydantic.ValidationError: If any value is invalid.
    """
    values: Dict[str, Any] = {}
    if config_path is not None:
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        values.update(flatten_yaml_config(load_yaml_config(config_path)))
    # 命令行参数优先级最高
    values.update({k: v for k, v in overrides.items() if v is not None})
    return Settings(**values)


def settings_to_env(settings: Settings) -> Dict[str, str]:
    """Render settings as environment variables that ``Settings()`` reads back.

    热重载时 uvicorn 在子进程中重新导入应用，命令行与 --config 的最终结果
    只能经由环境变量传递过去。值为 None 的字段不导出。

    Args:
        settings: Fully resolved settings.

    Returns:
        Dict[str, str]: Variable name to value, keyed by each field's alias.
    """
    env: Dict[str, str] = {}
    for name, field in Settings.model_fields.items():
        value = getattr(settings, name)
        if value is None:
            continue
        env[str(field.validation_alias)] = str(value)
    return env


# 全局配置单例（环境变量与默认值），供模块级 main:app 使用
settings = Settings()
