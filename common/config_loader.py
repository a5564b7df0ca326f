# =============================================================================
# 模块: common/config_loader.py
# 功能: YAML 配置文件加载与日志初始化工具模块
# 架构角色: 作为配置基础设施层，为日志系统提供 YAML 配置读取能力。
#   日志配置来自 /config/logging.yaml，支持运行时覆盖级别和文件路径。
#
# 设计决策:
#   - 配置文件缺失时不报错，回退到 logging.basicConfig
#   - 日志配置使用 Python 标准库 logging.config.dictConfig
#   - 相对路径的日志文件统一基于项目根目录解析
# =============================================================================
"""YAML configuration loader for FeedPulse logging."""

from __future__ import annotations

import logging
import logging.config
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

# 项目根目录：从 common/ 目录向上一级
BASE_DIR = Path(__file__).resolve().parents[1]
# 全局配置文件目录
CONFIG_DIR = BASE_DIR / "config"

_FALLBACK_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def load_yaml(file_path: Path) -> Dict[str, Any]:
    """Load a YAML file and return its contents as a dict.

    加载指定的 YAML 文件并返回解析后的字典。
    文件不存在时返回空字典。

    Args:
        file_path: Path to the YAML file.

    Returns:
        Dict[str, Any]: Parsed content, ``{}`` when missing or empty.
    """
    if not file_path.exists():
        return {}
    with open(file_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def setup_logging_from_yaml(
    config_path: Optional[Path] = None,
    log_level_override: Optional[str] = None,
    log_file_override: Optional[Path] = None,
) -> None:
    """Configure logging from YAML with optional overrides.

    从 YAML 配置文件初始化 Python 日志系统。
    如果 YAML 配置文件不存在，回退到 basicConfig 基础配置。

    Args:
        config_path: Path to logging YAML config. Defaults to /config/logging.yaml.
        log_level_override: Override the root logger level.
        log_file_override: Override the file handler's filename.
    """
    config_path = config_path or CONFIG_DIR / "logging.yaml"
    config = load_yaml(config_path)

    if not config:
        logging.basicConfig(
            level=(log_level_override or "INFO").upper(),
            format=_FALLBACK_FORMAT,
        )
        return

    if log_level_override:
        config.setdefault("root", {})["level"] = log_level_override.upper()

    if log_file_override:
        if "handlers" in config and "file" in config["handlers"]:
            config["handlers"]["file"]["filename"] = str(log_file_override)

    # 确保日志文件所在目录存在，相对路径基于项目根目录
    for handler in config.get("handlers", {}).values():
        if "filename" in handler:
            filename = Path(handler["filename"])
            if not filename.is_absolute():
                filename = BASE_DIR / filename
            filename.parent.mkdir(parents=True, exist_ok=True)
            handler["filename"] = str(filename)

    logging.config.dictConfig(config)
