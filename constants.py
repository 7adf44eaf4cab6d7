# constants.py

# ==============================================================================
# ✨ 应用基础信息 (Application Basics)
# ==============================================================================
APP_NAME = "Jellyfin Autorefresh New Releases"
APP_VERSION = "1.2.0"
APP_DATA_DIR_NAME = "jellyfin-autorefresh-new-releases" # XDG 配置目录下的子目录名
CONFIG_FILE_NAME = "config.ini"          # 主配置文件名
LEGACY_CONFIG_FILE_NAME = "config.json"  # 旧版 JSON 配置文件名 (兼容读取)
ENV_VAR_APP_DATA_DIR = "APP_DATA_DIR"    # 直接指定数据目录
ENV_VAR_XDG_CONFIG_HOME = "XDG_CONFIG_HOME"

# ==============================================================================
# ✨ Jellyfin 服务器配置 (Jellyfin Server)
# ==============================================================================
CONFIG_SECTION_JELLYFIN = "Jellyfin"
CONFIG_OPTION_JELLYFIN_URL = "jellyfin_url"
CONFIG_OPTION_JELLYFIN_API_KEY = "jellyfin_api_key"
CONFIG_OPTION_JELLYFIN_API_TIMEOUT = "api_timeout"
DEFAULT_JELLYFIN_API_TIMEOUT = 30  # 单次请求超时 (秒)
ENV_VAR_JELLYFIN_URL = "JELLYFIN_URL"
ENV_VAR_JELLYFIN_API_KEY = "JELLYFIN_API_KEY"

# 旧版 config.json 中的键名
LEGACY_KEY_URL = "jellyfinURL"
LEGACY_KEY_API_KEY = "apiKey"
LEGACY_KEY_DESIRED_IMAGE_HEIGHT = "desiredImageHeight"

# ==============================================================================
# ✨ 刷新策略配置 (Refresh Policy)
# ==============================================================================
CONFIG_SECTION_REFRESH = "Refresh"
CONFIG_OPTION_DESIRED_IMAGE_HEIGHT = "desired_image_height" # 主封面最低高度 (像素)
DEFAULT_DESIRED_IMAGE_HEIGHT = 360
ENV_VAR_DESIRED_IMAGE_HEIGHT = "DESIRED_IMAGE_HEIGHT"
CONFIG_OPTION_LOOKBACK_DAYS = "lookback_days"               # 回溯天数 (按首播日期)
DEFAULT_LOOKBACK_DAYS = 3
CONFIG_OPTION_REQUEST_INTERVAL = "request_interval"         # 每个项目处理前的间隔 (秒)
DEFAULT_REQUEST_INTERVAL = 2.0
CONFIG_OPTION_PROPAGATION_DELAY = "propagation_delay"       # 刷新请求后等待服务器生效的时间 (秒)
DEFAULT_PROPAGATION_DELAY = 5.0
MAX_REFRESH_ATTEMPTS = 2  # 每个项目最多发起的刷新次数 (含一次重试)

# ==============================================================================
# ✨ 日志配置 (Logging)
# ==============================================================================
CONFIG_SECTION_LOGGING = "Logging"
CONFIG_OPTION_LOG_LEVEL = "log_level"
DEFAULT_LOG_LEVEL = "INFO"
ENV_VAR_LOG_LEVEL = "LOG_LEVEL"
CONFIG_OPTION_LOG_TO_FILE = "log_to_file"
DEFAULT_LOG_TO_FILE = False
LOG_FILE_NAME = "app.log"
LOG_FILE_MAX_BYTES = 5 * 1024 * 1024
LOG_FILE_BACKUP_COUNT = 3

# ==============================================================================
# ✨ Jellyfin API 常量 (API Constants)
# ==============================================================================
IMAGE_TYPE_PRIMARY = "Primary"
ITEM_TYPE_EPISODE = "Episode"
REFRESH_MODE_FULL = "FullRefresh"
AUTH_HEADER_NAME = "Authorization"
AUTH_HEADER_TEMPLATE = 'MediaBrowser Token="{token}"'
