# -*- coding: utf-8 -*-
"""
统一配置管理服务

加载顺序（后者覆盖前者）：
1. AppConfig 默认值
2. JSON 配置文件（LOCALJUDGE_CONFIG，默认 ~/.localjudge/config.json）
3. 环境变量 LOCALJUDGE_<字段名大写>（.env 文件由入口加载）

使用方式：
    from localjudge.services.unified_config import get_config, update_config

    cfg = get_config()
    update_config(base_url="http://judge.local:3000")
"""

from __future__ import annotations

import json
import os
import threading
from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Optional, Dict, Any

from loguru import logger

from .exceptions import ConfigError


ENV_PREFIX = "LOCALJUDGE_"
_TRUE_VALUES = ("true", "1", "yes", "on")
_FALSE_VALUES = ("false", "0", "no", "off")


def localjudge_home() -> Path:
    """本地数据目录（配置、token、日志）"""
    return Path(os.getenv("LOCALJUDGE_HOME") or Path.home() / ".localjudge")


def default_config_path() -> Path:
    return Path(os.getenv("LOCALJUDGE_CONFIG") or localjudge_home() / "config.json")


@dataclass
class AppConfig:
    """应用配置（唯一定义）"""
    # 判题服务
    base_url: str = "http://localhost:3000"
    wait: bool = True
    poll_interval_ms: int = 1000
    poll_timeout_ms: int = 30000
    default_language_id: int = 71

    # 输出
    dry_run: bool = False
    preview_chars: int = 800

    # 网络
    request_timeout: float = 30.0
    verify_ssl: bool = True
    proxy_enabled: bool = False
    http_proxy: str = ""
    https_proxy: str = ""

    # 日志级别
    log_level: str = "WARNING"

    def validate(self) -> "AppConfig":
        """校验取值，失败抛出 ConfigError"""
        for name in ("poll_interval_ms", "poll_timeout_ms", "preview_chars"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ConfigError(f"{name} must be an integer >= 1, got {value!r}", {"field": name})
        if self.request_timeout <= 0:
            raise ConfigError(f"request_timeout must be > 0, got {self.request_timeout!r}", {"field": "request_timeout"})
        if not self.base_url.strip():
            raise ConfigError("base_url must not be empty", {"field": "base_url"})
        return self


def _coerce(name: str, field_type: str, raw: Any) -> Any:
    """把配置文件 / 环境变量里的值转换成字段类型"""
    try:
        if field_type == "bool":
            if isinstance(raw, bool):
                return raw
            text = str(raw).strip().lower()
            if text in _TRUE_VALUES:
                return True
            if text in _FALSE_VALUES:
                return False
            raise ValueError(raw)
        if field_type == "int":
            if isinstance(raw, bool):
                raise ValueError(raw)
            return int(raw)
        if field_type == "float":
            return float(raw)
        return str(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"invalid value for {name}: {raw!r}", {"field": name}) from exc


_FIELD_TYPES = {f.name: f.type if isinstance(f.type, str) else f.type.__name__ for f in fields(AppConfig)}


class ConfigService:
    """配置服务 - JSON 文件 + 环境变量"""

    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = Path(config_path) if config_path else default_config_path()
        self._config: Optional[AppConfig] = None
        self._config_lock = threading.Lock()

    def _read_file(self) -> Dict[str, Any]:
        if not self.config_path.exists():
            return {}
        try:
            data = json.loads(self.config_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise ConfigError(f"cannot read config file {self.config_path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigError(f"config file {self.config_path} must contain a JSON object")
        return data

    def _load(self) -> AppConfig:
        with self._config_lock:
            values = asdict(AppConfig())

            for key, raw in self._read_file().items():
                if key not in _FIELD_TYPES:
                    logger.debug(f"[Config] 忽略未知配置项: {key}")
                    continue
                values[key] = _coerce(key, _FIELD_TYPES[key], raw)

            for key, field_type in _FIELD_TYPES.items():
                raw = os.getenv(f"{ENV_PREFIX}{key.upper()}")
                if raw is not None and raw != "":
                    values[key] = _coerce(key, field_type, raw)

            self._config = AppConfig(**values).validate()
            logger.debug(f"[Config] 已加载配置: {self.config_path}")
            return self._config

    @property
    def cfg(self) -> AppConfig:
        """获取配置"""
        if self._config is None:
            self._load()
        return self._config

    def get(self, key: str, default: Any = None) -> Any:
        """获取单个配置项"""
        return getattr(self.cfg, key, default)

    def update(self, **kwargs) -> AppConfig:
        """更新配置并保存到配置文件"""
        current = asdict(self.cfg)
        for key, value in kwargs.items():
            if key not in _FIELD_TYPES:
                raise ConfigError(f"unknown config key: {key}", {"field": key})
            current[key] = _coerce(key, _FIELD_TYPES[key], value)

        updated = AppConfig(**current).validate()
        with self._config_lock:
            self._config = updated
            self._save()
        return updated

    def _save(self):
        """只把和默认值不同的项写入文件"""
        defaults = asdict(AppConfig())
        data = {k: v for k, v in asdict(self._config).items() if defaults.get(k) != v}
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        self.config_path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
        logger.info(f"[Config] 已保存到 {self.config_path}")

    def reload(self) -> AppConfig:
        """重新加载配置"""
        return self._load()

    def to_dict(self) -> Dict[str, Any]:
        """导出为字典"""
        return asdict(self.cfg)


# ==================== 全局访问函数 ====================

_service: Optional[ConfigService] = None
_service_lock = threading.Lock()


def get_config_service(config_path: Optional[Path] = None) -> ConfigService:
    """获取配置服务实例（传入路径时重新创建）"""
    global _service
    with _service_lock:
        if _service is None or config_path is not None:
            _service = ConfigService(config_path)
        return _service


def get_config() -> AppConfig:
    """获取配置"""
    return get_config_service().cfg


def update_config(**kwargs) -> AppConfig:
    """更新配置"""
    return get_config_service().update(**kwargs)


def reload_config() -> AppConfig:
    """重新加载配置"""
    return get_config_service().reload()


def reset_config_service() -> None:
    """丢弃全局实例（测试用）"""
    global _service
    with _service_lock:
        _service = None
