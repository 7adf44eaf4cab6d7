# handler/jellyfin.py

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry
from typing import Optional, List, Dict, Any

import constants
import logger_setup  # noqa: F401  注册 logger.trace
import logging
logger = logging.getLogger(__name__)

# ==============================================================================
# ✨ 异常定义
# ==============================================================================
class JellyfinError(Exception):
    """Jellyfin API 调用失败的基类。"""
    pass

class TransportError(JellyfinError):
    """连接失败、超时等传输层错误。"""
    pass

class ServerError(JellyfinError):
    """服务器返回了非 2xx 状态码。"""
    def __init__(self, status: int, reason: str = "", url: str = ""):
        self.status = status
        self.reason = reason
        self.url = url
        super().__init__(f"HTTP {status} {reason}".strip() + (f" | URL: {url}" if url else ""))

class DecodeError(JellyfinError):
    """响应体不是预期的 JSON 结构。"""
    pass

class RefreshError(JellyfinError):
    """刷新请求被服务器拒绝。"""
    def __init__(self, status: int, reason: str = ""):
        self.status = status
        self.reason = reason
        super().__init__(f"刷新请求失败: HTTP {status} {reason}".strip())

def is_success(status_code: int) -> bool:
    return 200 <= status_code < 300

# ★★★ 自定义的重试类，用于输出更友好的日志 ★★★
class LoggedRetry(Retry):
    """
    继承自 urllib3.Retry，每次重试前记录一条警告日志。
    """
    def increment(self, method=None, url=None, response=None, error=None, _pool=None, _stacktrace=None):
        # 不应再重试时父类会直接抛出异常，下面的日志不会执行
        new_retry = super().increment(method, url, response, error, _pool, _stacktrace)

        if response:
            reason = f"不成功的状态码: {response.status}"
        elif error:
            reason = f"连接错误: {error.__class__.__name__}"
        else:
            reason = "未知错误"

        logger.warning(
            f"  ➜ Jellyfin API 请求失败 ({reason})。将在 {new_retry.get_backoff_time():.2f} 秒后重试... (第 {len(new_retry.history)} 次重试)"
        )
        return new_retry

def requests_retry_session(
    retries=3,
    backoff_factor=0.5,
    status_forcelist=(500, 502, 503, 504),
    session=None,
):
    """
    创建一个配置了重试策略的 requests.Session 对象。
    只对 GET/HEAD 重试：刷新请求 (POST) 的重试次数由调用方控制。
    """
    session = session or requests.Session()
    retry = LoggedRetry(
        total=retries,
        read=retries,
        connect=retries,
        backoff_factor=backoff_factor,
        status_forcelist=status_forcelist,
        allowed_methods=frozenset(['HEAD', 'GET']),
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry)
    session.mount('http://', adapter)
    session.mount('https://', adapter)
    return session

# ==============================================================================
# ✨ 数据规范化
# ==============================================================================
def _text_field(raw_item: Dict[str, Any], key: str) -> str:
    value = raw_item.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise DecodeError(f"项目 {raw_item.get('Id')} 的 {key} 字段不是字符串: {str(value)[:200]}")
    return value

def _normalize_item(raw_item: Any) -> Dict[str, str]:
    if not isinstance(raw_item, dict) or not raw_item.get("Id"):
        raise DecodeError(f"项目数据缺少 Id 字段: {str(raw_item)[:200]}")
    return {
        "Id": str(raw_item["Id"]),
        "Name": _text_field(raw_item, "Name"),
        "SeriesName": _text_field(raw_item, "SeriesName"),
        "Overview": _text_field(raw_item, "Overview"),
    }

def _normalize_image(raw_image: Dict[str, Any]) -> Dict[str, Any]:
    try:
        height = int(raw_image.get("Height") or 0)
    except (TypeError, ValueError):
        height = 0
    return {
        "ImageType": raw_image.get("ImageType") or "",
        "Height": height,
    }

class JellyfinAPIClient:
    """
    Jellyfin API 客户端封装
    功能：
    1. 统一注入 MediaBrowser Token 认证头，调用方接触不到凭据。
    2. GET 请求在 5xx / 连接错误时自动重试。
    3. 使用 Session 保持长连接。
    """
    def __init__(self, base_url: str, api_key: str, timeout: float = constants.DEFAULT_JELLYFIN_API_TIMEOUT, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip('/')
        self._api_key = api_key
        self.timeout = timeout
        self.session = session or requests_retry_session()

    def _headers(self) -> Dict[str, str]:
        return {
            constants.AUTH_HEADER_NAME: constants.AUTH_HEADER_TEMPLATE.format(token=self._api_key),
            "Accept": "application/json",
        }

    def request(self, method: str, path: str, **kwargs) -> requests.Response:
        """
        统一请求入口：拼接 URL、注入认证头和超时，把 requests 的异常转换为 TransportError。
        """
        url = f"{self.base_url}{path}"
        headers = self._headers()
        headers.update(kwargs.pop("headers", None) or {})
        kwargs.setdefault("timeout", self.timeout)
        try:
            return self.session.request(method, url, headers=headers, **kwargs)
        except requests.exceptions.RequestException as e:
            raise TransportError(f"请求 {method} {url} 失败: {e}") from e

    def get(self, path: str, **kwargs) -> requests.Response:
        return self.request("GET", path, **kwargs)

    def post(self, path: str, **kwargs) -> requests.Response:
        return self.request("POST", path, **kwargs)

    def close(self):
        self.session.close()

    # --- 列表查询 ---
    def get_items(self, params: Dict[str, Any]) -> List[Dict[str, str]]:
        """
        GET /Items，按过滤条件查询项目列表。
        失败时抛出 TransportError / ServerError / DecodeError，由调用方决定是否致命。
        """
        response = self.get("/Items", params=params)
        if not is_success(response.status_code):
            raise ServerError(response.status_code, response.reason or "", url=response.url or "")

        try:
            data = response.json()
        except ValueError as e:
            raise DecodeError(f"无法解析 /Items 响应: {e}") from e

        if not isinstance(data, dict) or not isinstance(data.get("Items"), list):
            raise DecodeError(f"/Items 响应缺少 Items 列表: {str(data)[:200]}")

        items = [_normalize_item(raw_item) for raw_item in data["Items"]]
        logger.trace(f"  ➜ /Items 查询返回 {len(items)} 个项目。")
        return items

    def get_recent_episodes(self, min_premiere_date: str) -> List[Dict[str, str]]:
        """获取首播日期不早于 min_premiere_date (RFC3339) 的所有分集。"""
        params = {
            "includeItemTypes": constants.ITEM_TYPE_EPISODE,
            "recursive": "true",
            "fields": "Overview",
            "minPremiereDate": min_premiere_date,
        }
        return self.get_items(params)

    def get_item_by_id(self, item_id: str) -> Optional[Dict[str, str]]:
        """按 ID 重新获取单个项目，项目已不存在时返回 None。"""
        items = self.get_items({"ids": item_id, "fields": "Overview"})
        if not items:
            return None
        return items[0]

    # --- 图片 ---
    def get_item_images(self, item_id: str) -> List[Dict[str, Any]]:
        """
        GET /Items/{id}/Images。
        任何失败都只记录日志并返回空列表，视为“没有已知图片”。
        """
        try:
            response = self.get(f"/Items/{item_id}/Images")
        except TransportError as e:
            logger.warning(f"  ⚠️ 获取项目图片信息失败 (ItemID: {item_id}): {e}")
            return []

        if not is_success(response.status_code):
            logger.warning(f"  ⚠️ 获取项目图片信息失败 (ItemID: {item_id}): HTTP {response.status_code}")
            return []

        try:
            data = response.json()
        except ValueError as e:
            logger.warning(f"  ⚠️ 无法解析项目图片信息 (ItemID: {item_id}): {e}")
            return []

        if not isinstance(data, list):
            logger.warning(f"  ⚠️ 项目图片信息格式异常 (ItemID: {item_id}): {str(data)[:200]}")
            return []

        return [_normalize_image(image) for image in data if isinstance(image, dict)]

    # --- 刷新 ---
    def refresh_item_metadata(self, item_id: str) -> None:
        """
        请求服务器完整替换该项目的元数据和图片。
        服务器异步执行刷新，成功返回只代表请求已被接受。
        """
        params = {
            "metadataRefreshMode": constants.REFRESH_MODE_FULL,
            "imageRefreshMode": constants.REFRESH_MODE_FULL,
            "replaceAllMetadata": "true",
            "replaceAllImages": "true",
        }
        response = self.post(f"/Items/{item_id}/Refresh", params=params)
        if not is_success(response.status_code):
            raise RefreshError(response.status_code, response.reason or "")
        logger.debug(f"  ➜ 已提交刷新请求 (ItemID: {item_id})。")
