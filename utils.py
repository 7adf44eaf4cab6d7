# utils.py

import time
from typing import Optional, Tuple, Any, Dict, List, Callable

import constants
import logging
logger = logging.getLogger(__name__)

REASON_MISSING_OVERVIEW = "缺失简介"
REASON_MISSING_PRIMARY = "缺失主封面"
REASON_LOW_RESOLUTION = "主封面分辨率过低"

def get_primary_image(images: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """返回第一张 Primary 图片；存在多张时只认第一张。"""
    for image in images or []:
        if image.get("ImageType") == constants.IMAGE_TYPE_PRIMARY:
            return image
    return None

def check_item_completeness(item: Dict[str, Any], images: List[Dict[str, Any]], desired_image_height: int) -> Tuple[bool, str]:
    """
    检查项目的元数据和主封面是否完整。
    返回: (是否通过, 失败原因)
    """
    # 1. 简介检查：去掉首尾空白后不能为空
    overview = item.get("Overview") or ""
    if not overview.strip():
        return False, REASON_MISSING_OVERVIEW

    # 2. 主封面检查
    primary = get_primary_image(images)
    if primary is None:
        return False, REASON_MISSING_PRIMARY

    # 3. 分辨率检查
    if (primary.get("Height") or 0) < desired_image_height:
        return False, f"{REASON_LOW_RESOLUTION} ({primary.get('Height') or 0}p)"

    return True, ""

def attempt_with_retry(operation: Callable[[int], bool],
                       max_attempts: int = constants.MAX_REFRESH_ATTEMPTS,
                       delay: float = 0,
                       sleep_func: Callable[[float], None] = time.sleep,
                       label: str = "") -> Tuple[bool, int]:
    """
    最多执行 max_attempts 次 operation(第几次)，直到它返回真值。
    第一次之后的每次尝试前先等待 delay 秒。
    返回: (是否成功, 实际尝试次数)
    """
    if max_attempts < 1:
        raise ValueError("max_attempts 至少为 1")

    for attempt in range(1, max_attempts + 1):
        if attempt > 1:
            logger.info(f"  ➜ {label}将在 {delay:g} 秒后重试 (第 {attempt}/{max_attempts} 次)...")
            sleep_func(delay)
        if operation(attempt):
            return True, attempt
    return False, max_attempts
