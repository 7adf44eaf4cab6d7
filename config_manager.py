# config_manager.py

import os
import json
import configparser
import logging
from typing import Dict, Any, Optional
from urllib.parse import urlparse

import constants

logger = logging.getLogger(__name__)

class FatalBootstrapError(Exception):
    """配置缺失或非法，程序无法启动。"""
    pass

def get_persistent_data_path() -> str:
    """
    数据目录：
    1. 环境变量 APP_DATA_DIR 优先；
    2. 否则为 $XDG_CONFIG_HOME/jellyfin-autorefresh-new-releases (未设置时为 ~/.config)。
    """
    explicit_dir = os.environ.get(constants.ENV_VAR_APP_DATA_DIR)
    if explicit_dir:
        return os.path.expanduser(explicit_dir)
    config_home = os.environ.get(constants.ENV_VAR_XDG_CONFIG_HOME) or "~/.config"
    return os.path.join(os.path.expanduser(config_home), constants.APP_DATA_DIR_NAME)

PERSISTENT_DATA_PATH = get_persistent_data_path()
LOG_DIRECTORY = os.path.join(PERSISTENT_DATA_PATH, "logs")

# 当前生效的配置，load_config 成功后写入
APP_CONFIG: Dict[str, Any] = {}

# --- 配置项定义：键 -> (所在节, 类型, 默认值) ---
CONFIG_DEFINITION = {
    constants.CONFIG_OPTION_JELLYFIN_URL: (constants.CONFIG_SECTION_JELLYFIN, str, ""),
    constants.CONFIG_OPTION_JELLYFIN_API_KEY: (constants.CONFIG_SECTION_JELLYFIN, str, ""),
    constants.CONFIG_OPTION_JELLYFIN_API_TIMEOUT: (constants.CONFIG_SECTION_JELLYFIN, int, constants.DEFAULT_JELLYFIN_API_TIMEOUT),
    constants.CONFIG_OPTION_DESIRED_IMAGE_HEIGHT: (constants.CONFIG_SECTION_REFRESH, int, constants.DEFAULT_DESIRED_IMAGE_HEIGHT),
    constants.CONFIG_OPTION_LOOKBACK_DAYS: (constants.CONFIG_SECTION_REFRESH, int, constants.DEFAULT_LOOKBACK_DAYS),
    constants.CONFIG_OPTION_REQUEST_INTERVAL: (constants.CONFIG_SECTION_REFRESH, float, constants.DEFAULT_REQUEST_INTERVAL),
    constants.CONFIG_OPTION_PROPAGATION_DELAY: (constants.CONFIG_SECTION_REFRESH, float, constants.DEFAULT_PROPAGATION_DELAY),
    constants.CONFIG_OPTION_LOG_LEVEL: (constants.CONFIG_SECTION_LOGGING, str, constants.DEFAULT_LOG_LEVEL),
    constants.CONFIG_OPTION_LOG_TO_FILE: (constants.CONFIG_SECTION_LOGGING, bool, constants.DEFAULT_LOG_TO_FILE),
}

# 环境变量覆盖：环境变量名 -> 配置键
ENV_OVERRIDES = {
    constants.ENV_VAR_JELLYFIN_URL: constants.CONFIG_OPTION_JELLYFIN_URL,
    constants.ENV_VAR_JELLYFIN_API_KEY: constants.CONFIG_OPTION_JELLYFIN_API_KEY,
    constants.ENV_VAR_DESIRED_IMAGE_HEIGHT: constants.CONFIG_OPTION_DESIRED_IMAGE_HEIGHT,
    constants.ENV_VAR_LOG_LEVEL: constants.CONFIG_OPTION_LOG_LEVEL,
}

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}

def _convert_value(key: str, raw_value: Any, value_type: type) -> Any:
    """把字符串/JSON 值转换为定义里的类型，失败则视为致命配置错误。"""
    try:
        if value_type is bool:
            if isinstance(raw_value, bool):
                return raw_value
            text = str(raw_value).strip().lower()
            if text in _TRUE_VALUES:
                return True
            if text in _FALSE_VALUES:
                return False
            raise ValueError(f"无法识别的布尔值 '{raw_value}'")
        if value_type is int:
            if isinstance(raw_value, bool):
                raise ValueError("布尔值不能作为整数")
            if isinstance(raw_value, float) and not raw_value.is_integer():
                raise ValueError(f"'{raw_value}' 不是整数")
            return int(str(raw_value).strip()) if isinstance(raw_value, str) else int(raw_value)
        if value_type is float:
            return float(raw_value)
        return str(raw_value).strip()
    except (TypeError, ValueError) as e:
        raise FatalBootstrapError(f"配置项 '{key}' 的值 '{raw_value}' 无效: {e}")

def _read_ini_config(config_path: str) -> Dict[str, Any]:
    parser = configparser.ConfigParser()
    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            parser.read_file(f)
    except (OSError, configparser.Error) as e:
        raise FatalBootstrapError(f"无法读取配置文件 {config_path}: {e}")

    values = {}
    for key, (section, value_type, _default) in CONFIG_DEFINITION.items():
        if parser.has_option(section, key):
            values[key] = _convert_value(key, parser.get(section, key), value_type)
    return values

def _read_legacy_json_config(config_path: str) -> Dict[str, Any]:
    """读取旧版 config.json (jellyfinURL / apiKey / desiredImageHeight)。"""
    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise FatalBootstrapError(f"无法读取配置文件 {config_path}: {e}")

    if not isinstance(data, dict):
        raise FatalBootstrapError(f"配置文件 {config_path} 的顶层必须是 JSON 对象。")

    legacy_mapping = {
        constants.LEGACY_KEY_URL: constants.CONFIG_OPTION_JELLYFIN_URL,
        constants.LEGACY_KEY_API_KEY: constants.CONFIG_OPTION_JELLYFIN_API_KEY,
        constants.LEGACY_KEY_DESIRED_IMAGE_HEIGHT: constants.CONFIG_OPTION_DESIRED_IMAGE_HEIGHT,
    }
    values = {}
    for legacy_key, key in legacy_mapping.items():
        if legacy_key in data and data[legacy_key] is not None:
            values[key] = _convert_value(key, data[legacy_key], CONFIG_DEFINITION[key][1])
    return values

def _apply_env_overrides(config: Dict[str, Any]) -> int:
    applied = 0
    for env_name, key in ENV_OVERRIDES.items():
        raw_value = os.environ.get(env_name)
        if raw_value is None or raw_value == "":
            continue
        config[key] = _convert_value(key, raw_value, CONFIG_DEFINITION[key][1])
        logger.debug(f"  ➜ 配置项 '{key}' 已被环境变量 {env_name} 覆盖。")
        applied += 1
    return applied

def validate_config(config: Dict[str, Any]) -> None:
    """校验启动所需的关键配置，不合法时抛出 FatalBootstrapError。"""
    url = config.get(constants.CONFIG_OPTION_JELLYFIN_URL, "")
    parsed = urlparse(url) if url else None
    if not parsed or parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise FatalBootstrapError(f"Jellyfin 服务器地址无效: '{url}'")

    if not config.get(constants.CONFIG_OPTION_JELLYFIN_API_KEY):
        raise FatalBootstrapError("Jellyfin API Key 为空。")

    if config.get(constants.CONFIG_OPTION_DESIRED_IMAGE_HEIGHT, 0) <= 0:
        raise FatalBootstrapError("desired_image_height 必须是正整数。")

    if config.get(constants.CONFIG_OPTION_LOOKBACK_DAYS, 0) <= 0:
        raise FatalBootstrapError("lookback_days 必须是正整数。")

    if config.get(constants.CONFIG_OPTION_JELLYFIN_API_TIMEOUT, 0) <= 0:
        raise FatalBootstrapError("api_timeout 必须是正整数。")

    for key in (constants.CONFIG_OPTION_REQUEST_INTERVAL, constants.CONFIG_OPTION_PROPAGATION_DELAY):
        if config.get(key, 0) < 0:
            raise FatalBootstrapError(f"{key} 不能为负数。")

def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    加载配置：
    - 优先读取数据目录下的 config.ini；
    - 没有 config.ini 时兼容读取旧版 config.json；
    - 最后应用环境变量覆盖并校验。
    成功后同时写入 APP_CONFIG。
    """
    global APP_CONFIG
    config = {key: default for key, (_section, _type, default) in CONFIG_DEFINITION.items()}

    data_path = get_persistent_data_path()
    if config_path is None:
        ini_path = os.path.join(data_path, constants.CONFIG_FILE_NAME)
        legacy_path = os.path.join(data_path, constants.LEGACY_CONFIG_FILE_NAME)
        if os.path.exists(ini_path):
            config_path = ini_path
        elif os.path.exists(legacy_path):
            config_path = legacy_path

    if config_path:
        if not os.path.exists(config_path):
            raise FatalBootstrapError(f"配置文件不存在: {config_path}")
        if config_path.lower().endswith(".json"):
            logger.debug(f"  ➜ 正在读取旧版 JSON 配置: {config_path}")
            config.update(_read_legacy_json_config(config_path))
        else:
            logger.debug(f"  ➜ 正在读取配置文件: {config_path}")
            config.update(_read_ini_config(config_path))

    env_count = _apply_env_overrides(config)

    if not config_path and env_count == 0:
        raise FatalBootstrapError(
            f"无法从 {data_path} 加载配置 (未找到 {constants.CONFIG_FILE_NAME} 或 {constants.LEGACY_CONFIG_FILE_NAME})，程序退出！"
        )

    validate_config(config)
    config[constants.CONFIG_OPTION_JELLYFIN_URL] = config[constants.CONFIG_OPTION_JELLYFIN_URL].rstrip('/')

    APP_CONFIG = config
    return config
