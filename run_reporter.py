# run_reporter.py

from datetime import datetime
from typing import Dict, Any, List

import constants
import logging
logger = logging.getLogger(__name__)

OUTCOME_SKIPPED = "skipped"
OUTCOME_SUCCEEDED = "succeeded"
OUTCOME_FAILED = "failed"

class RunReporter:
    """
    记录一次运行中每个项目的处理结果，并在结束时输出汇总。
    只负责展示，不参与任何判断。
    """
    def __init__(self):
        self.skipped = 0
        self.succeeded = 0
        self.failed = 0
        self.records: List[Dict[str, Any]] = []
        self._pending_reasons: Dict[str, str] = {}

    def start_run(self, server_url: str, started_at: datetime, cutoff: datetime, total: int):
        logger.info(f"{constants.APP_NAME} v{constants.APP_VERSION}")
        logger.info("----------")
        logger.info(f"开始时间: {started_at.strftime('%Y-%m-%d %H:%M:%S %Z').strip()}")
        logger.info(f"正在连接: {server_url}")
        logger.info(f"处理首播日期晚于 {cutoff.strftime('%Y-%m-%d %H:%M:%S %Z').strip()} 的所有分集，共 {total} 个。")

    def item_started(self, index: int, item: Dict[str, Any]):
        logger.info(f"  {index}. ID:{item.get('Id')}")
        logger.info(f"  {item.get('Name')} : {item.get('SeriesName')}")

    def item_needs_refresh(self, item: Dict[str, Any], reason: str):
        self._pending_reasons[item.get('Id')] = reason
        logger.info(f"  ➜ 未满足全部条件 ({reason})，正在请求刷新...")

    def item_skipped(self, item: Dict[str, Any]):
        self.skipped += 1
        self._add_record(item, OUTCOME_SKIPPED, attempts=0)
        logger.info("  ✅ 所有条件均已满足，跳过。")

    def item_refreshed(self, item: Dict[str, Any], attempts: int):
        self.succeeded += 1
        self._add_record(item, OUTCOME_SUCCEEDED, attempts=attempts)
        logger.info("  ✅ 刷新成功！该分集现在满足所有条件。")

    def item_failed(self, item: Dict[str, Any], attempts: int):
        self.failed += 1
        self._add_record(item, OUTCOME_FAILED, attempts=attempts)
        logger.info(f"  🚫 {attempts} 次刷新后仍未满足条件，下次再试吧！")

    def _add_record(self, item: Dict[str, Any], outcome: str, attempts: int):
        self.records.append({
            "id": item.get('Id'),
            "name": item.get('Name'),
            "series_name": item.get('SeriesName'),
            "outcome": outcome,
            "reason": self._pending_reasons.pop(item.get('Id'), ""),
            "attempts": attempts,
        })

    def summary(self) -> Dict[str, int]:
        return {
            "skipped": self.skipped,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "total": len(self.records),
        }

    def render_summary(self):
        logger.info("汇总:")
        logger.info(f"  跳过: {self.skipped}")
        logger.info(f"  刷新成功: {self.succeeded}")
        logger.info(f"  刷新失败: {self.failed}")
        logger.info("----------")
