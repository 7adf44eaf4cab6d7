# refresh_processor.py

import time
from datetime import datetime, timedelta
from typing import Dict, Any, Optional, Callable, Tuple

import pytz

import constants
import utils
import handler.jellyfin as jellyfin
from run_reporter import RunReporter
import logger_setup  # noqa: F401  注册 logger.trace
import logging

logger = logging.getLogger(__name__)

def format_rfc3339(moment: datetime) -> str:
    return moment.astimezone(pytz.utc).strftime("%Y-%m-%dT%H:%M:%SZ")

class RefreshProcessor:
    """
    对最近首播的分集做一次完整性巡检：
    检查 → 不完整则请求刷新 → 等待生效 → 复查 → 仍不完整则重试一次。
    """
    def __init__(self, config: Dict[str, Any],
                 client: Optional[jellyfin.JellyfinAPIClient] = None,
                 sleep_func: Callable[[float], None] = time.sleep,
                 now_func: Optional[Callable[[], datetime]] = None):
        self.config = config

        self.server_url = config[constants.CONFIG_OPTION_JELLYFIN_URL]
        self.client = client or jellyfin.JellyfinAPIClient(
            self.server_url,
            config[constants.CONFIG_OPTION_JELLYFIN_API_KEY],
            timeout=config.get(constants.CONFIG_OPTION_JELLYFIN_API_TIMEOUT, constants.DEFAULT_JELLYFIN_API_TIMEOUT)
        )

        self.desired_image_height = int(config.get(constants.CONFIG_OPTION_DESIRED_IMAGE_HEIGHT, constants.DEFAULT_DESIRED_IMAGE_HEIGHT))
        self.lookback_days = int(config.get(constants.CONFIG_OPTION_LOOKBACK_DAYS, constants.DEFAULT_LOOKBACK_DAYS))
        self.request_interval = float(config.get(constants.CONFIG_OPTION_REQUEST_INTERVAL, constants.DEFAULT_REQUEST_INTERVAL))
        self.propagation_delay = float(config.get(constants.CONFIG_OPTION_PROPAGATION_DELAY, constants.DEFAULT_PROPAGATION_DELAY))

        self._sleep = sleep_func
        self._now = now_func or (lambda: datetime.now(pytz.utc))

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, tb):
        self.close()

    def close(self):
        self.client.close()

    def run(self) -> RunReporter:
        """
        执行一次完整巡检。
        初始列表获取失败时直接抛出 JellyfinError，不处理任何项目。
        """
        started_at = self._now()
        cutoff = started_at - timedelta(days=self.lookback_days)
        logger.trace(f"  ➜ 回溯 {self.lookback_days} 天，截止时间: {format_rfc3339(cutoff)}")

        all_items = self.client.get_recent_episodes(format_rfc3339(cutoff))

        reporter = RunReporter()
        reporter.start_run(self.server_url, started_at, cutoff, len(all_items))

        for i, item in enumerate(all_items):
            self.process_single_item(i + 1, item, reporter)

        reporter.render_summary()
        return reporter

    # --- 单个项目 ---
    def process_single_item(self, index: int, item: Dict[str, Any], reporter: RunReporter):
        reporter.item_started(index, item)
        self._sleep(self.request_interval)

        is_fine, reason = self._check_item(item)
        if is_fine:
            reporter.item_skipped(item)
            return

        reporter.item_needs_refresh(item, reason)
        success, attempts = utils.attempt_with_retry(
            lambda attempt: self._refresh_and_verify(item, attempt),
            max_attempts=constants.MAX_REFRESH_ATTEMPTS,
            delay=self.request_interval,
            sleep_func=self._sleep,
            label=f"'{item.get('Name')}' "
        )
        if success:
            reporter.item_refreshed(item, attempts)
        else:
            reporter.item_failed(item, attempts)

    def _check_item(self, item: Dict[str, Any]) -> Tuple[bool, str]:
        images = self.client.get_item_images(item['Id'])
        is_fine, reason = utils.check_item_completeness(item, images, self.desired_image_height)
        if not is_fine:
            logger.debug(f"    ➜ ItemID {item['Id']}: {reason}")
        return is_fine, reason

    def _refresh_and_verify(self, item: Dict[str, Any], attempt: int) -> bool:
        """一次“刷新 → 等待 → 复查”尝试，返回复查是否通过。"""
        item_id = item['Id']
        log_identifier = f"'{item.get('Name')}' (ItemID: {item_id})"

        try:
            self.client.refresh_item_metadata(item_id)
        except (jellyfin.RefreshError, jellyfin.TransportError) as e:
            logger.warning(f"  ⚠️ 刷新 {log_identifier} 失败: {e}")
            return False

        # 服务器异步刷新，等待元数据真正更新
        logger.trace(f"  ➜ 已提交第 {attempt} 次刷新，等待 {self.propagation_delay:g} 秒后复查 {log_identifier}...")
        self._sleep(self.propagation_delay)

        try:
            updated_item = self.client.get_item_by_id(item_id)
        except jellyfin.JellyfinError as e:
            logger.warning(f"  ⚠️ 复查时重新获取 {log_identifier} 失败: {e}")
            return False

        if updated_item is None:
            logger.warning(f"  ⚠️ 复查时未找到 {log_identifier}，可能已被删除。")
            return False

        is_fine, reason = self._check_item(updated_item)
        if not is_fine:
            logger.info(f"  ➜ 刷新后仍未满足条件: {reason}")
        return is_fine
