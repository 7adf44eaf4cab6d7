# logger_setup.py

import os
import sys
import logging
from logging.handlers import RotatingFileHandler
from typing import Optional

import constants

# --- 自定义 TRACE 级别 (比 DEBUG 更啰嗦) ---
TRACE_LEVEL_NUM = 5
logging.addLevelName(TRACE_LEVEL_NUM, "TRACE")

def _trace(self, message, *args, **kwargs):
    if self.isEnabledFor(TRACE_LEVEL_NUM):
        self._log(TRACE_LEVEL_NUM, message, args, **kwargs)

logging.Logger.trace = _trace

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
FILE_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# 只有一个控制台 handler，重复调用 setup_logging 时替换它
_console_handler: Optional[logging.Handler] = None
_file_handler: Optional[logging.Handler] = None

def resolve_level(level_name) -> int:
    """把 'INFO' / 'trace' / 10 这类输入转换为 logging 级别数值，无法识别时回退到 INFO。"""
    if isinstance(level_name, int):
        return level_name
    name = str(level_name or "").strip().upper()
    if name == "TRACE":
        return TRACE_LEVEL_NUM
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO

def setup_logging(level_name=constants.DEFAULT_LOG_LEVEL) -> logging.Logger:
    """配置根日志记录器：输出到 stdout，并压低第三方库的日志。"""
    global _console_handler
    root_logger = logging.getLogger()
    root_logger.setLevel(resolve_level(level_name))

    if _console_handler is not None:
        root_logger.removeHandler(_console_handler)

    _console_handler = logging.StreamHandler(sys.stdout)
    _console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    root_logger.addHandler(_console_handler)

    #过滤底层日志
    logging.getLogger("requests").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    return root_logger

def add_file_handler(log_directory: str) -> str:
    """
    追加一个按大小轮转的文件日志。
    返回日志文件的完整路径。
    """
    global _file_handler
    os.makedirs(log_directory, exist_ok=True)
    log_file_path = os.path.join(log_directory, constants.LOG_FILE_NAME)

    root_logger = logging.getLogger()
    if _file_handler is not None:
        root_logger.removeHandler(_file_handler)
        _file_handler.close()

    _file_handler = RotatingFileHandler(
        log_file_path,
        maxBytes=constants.LOG_FILE_MAX_BYTES,
        backupCount=constants.LOG_FILE_BACKUP_COUNT,
        encoding='utf-8'
    )
    _file_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, datefmt=DATE_FORMAT))
    root_logger.addHandler(_file_handler)
    return log_file_path
