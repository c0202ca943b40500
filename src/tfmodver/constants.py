"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONNECTION_ERROR = 2
    EXIT_WARNINGS = 3
    USAGE_ERROR = 4


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    APP_NAME = "terraform-module-versions"
    LOG_FORMAT = "[%(levelname)s] %(message)s"

    # Registry
    TERRAFORM_REGISTRY_HOST = "registry.terraform.io"
    GITHUB_HOST = "github.com"
    REGISTRY_URL_TEMPLATE = "https://{host}/v1/modules/{namespace}/{name}/{provider}"
    REGISTRY_TIMEOUT = 30  # Timeout in seconds for all registry requests
    REGISTRY_CACHE_TTL_SEC = 24 * 60 * 60
    USER_AGENT = "terraform-module-versions/0.3"

    # Fetcher
    DEFAULT_WORKERS = 4
    CANCEL_POLL_INTERVAL_SEC = 0.05

    # Cache
    CACHE_FILE_SUFFIX = ".json"
    CACHE_KEY_MAX_LEN = 32
    CACHE_CLEANUP_INTERVAL_SEC = 5 * 60

    # Updater
    TERRAFORM_EXTENSIONS = (".tf",)
    TEMP_FILE_PREFIX = ".tf-tmp-"
    DIFF_TOOL_TIMEOUT_SEC = 10

    # Config
    CONFIG_FILE_NAME = "config.toml"
    ENV_XDG_CONFIG_HOME = "XDG_CONFIG_HOME"
    ENV_XDG_CACHE_HOME = "XDG_CACHE_HOME"

    # Report
    MAX_TRACKED_LOCATIONS = 100
