# main.py

import os
import sys

import constants
import logger_setup
import config_manager
import handler.jellyfin as jellyfin
from refresh_processor import RefreshProcessor
import logging

logger = logging.getLogger(__name__)

def main() -> int:
    """程序入口：返回 0 表示正常结束，1 表示启动失败或初始查询失败。"""
    logger_setup.setup_logging(os.environ.get(constants.ENV_VAR_LOG_LEVEL, constants.DEFAULT_LOG_LEVEL))

    try:
        config = config_manager.load_config()
    except config_manager.FatalBootstrapError as e:
        logger.critical(f"  🚫 配置加载失败: {e}")
        return 1

    logger_setup.setup_logging(config[constants.CONFIG_OPTION_LOG_LEVEL])
    if config.get(constants.CONFIG_OPTION_LOG_TO_FILE):
        log_file_path = logger_setup.add_file_handler(config_manager.LOG_DIRECTORY)
        logger.debug(f"  ➜ 日志同时写入: {log_file_path}")

    with RefreshProcessor(config) as processor:
        try:
            processor.run()
        except jellyfin.ServerError as e:
            logger.critical(f"  🚫 获取新分集列表失败，请检查 API Key。错误: {e}")
            return 1
        except jellyfin.JellyfinError as e:
            logger.critical(f"  🚫 获取新分集列表失败: {e}")
            return 1

    return 0

if __name__ == '__main__':
    sys.exit(main())
