"""
Environment Variable Configuration with Validation

Provides the suite's configuration snapshot with:
- Type validation (str, int, bool, float, path)
- Default values and named environment presets (config/environments.yaml)
- Validation rules (min/max, choices, patterns)
- Startup validation with clear error messages

Usage:
    from config import load_settings

    settings = load_settings()
    settings.base_url
    settings.poll_timeout

The snapshot is built once per pytest session and passed to page objects,
HTTP helpers and steps. Nothing reads os.environ after that.
"""

import logging
import os
import re
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent.parent
PRESETS_FILE = Path(__file__).resolve().parent / "environments.yaml"

URL_PATTERN = r"^https?://[^\s/$.?#].[^\s]*$"


class ConfigError(Exception):
    """Raised when configuration validation fails."""

    pass


@dataclass
class EnvVar:
    """Environment variable definition with validation."""

    name: str
    default: Any = None
    var_type: str = "str"  # str, int, bool, float, path
    required: bool = False
    description: str = ""
    min_value: Optional[Union[int, float]] = None
    max_value: Optional[Union[int, float]] = None
    choices: Optional[List[Any]] = None
    pattern: Optional[str] = None
    validator: Optional[Callable[[Any], bool]] = None
    sensitive: bool = False

    def parse(self, value: str) -> Any:
        """Parse string value to target type."""
        if value is None:
            return None

        if self.var_type == "str":
            return value.strip()
        elif self.var_type == "int":
            try:
                return int(value)
            except ValueError:
                raise ConfigError(f"{self.name}: '{value}' is not a valid integer")
        elif self.var_type == "float":
            try:
                return float(value)
            except ValueError:
                raise ConfigError(f"{self.name}: '{value}' is not a valid float")
        elif self.var_type == "bool":
            return value.strip().lower() in ("true", "1", "yes", "on")
        elif self.var_type == "path":
            path = Path(value)
            if not path.is_absolute():
                path = Path.cwd() / path
            return path
        else:
            return value

    def validate(self, value: Any) -> tuple[bool, str]:
        """Validate parsed value. Returns (is_valid, error_message)."""
        if value is None or value == "":
            if self.required:
                return False, f"{self.name} is required but not set"
            return True, ""

        if self.var_type in ("int", "float"):
            if self.min_value is not None and value < self.min_value:
                return False, f"{self.name}: value {value} is below minimum {self.min_value}"
            if self.max_value is not None and value > self.max_value:
                return False, f"{self.name}: value {value} exceeds maximum {self.max_value}"

        if self.choices is not None and value not in self.choices:
            return (
                False,
                f"{self.name}: '{value}' is not a valid choice. Must be one of: {self.choices}",
            )

        if self.pattern and self.var_type == "str":
            if not re.match(self.pattern, value):
                return False, f"{self.name}: '{value}' does not match required pattern"

        if self.validator:
            try:
                if not self.validator(value):
                    return False, f"{self.name}: custom validation failed for value '{value}'"
            except Exception as e:
                return False, f"{self.name}: validation error - {e}"

        return True, ""

    def get_value(self, environ: Optional[Mapping[str, str]] = None) -> Any:
        """Get validated value from the environment mapping."""
        environ = os.environ if environ is None else environ
        raw_value = environ.get(self.name)

        if raw_value is None or raw_value.strip() == "":
            if self.required:
                raise ConfigError(f"Required environment variable {self.name} is not set")
            return self.default

        parsed = self.parse(raw_value)
        is_valid, error = self.validate(parsed)

        if not is_valid:
            raise ConfigError(error)

        return parsed


# Define all environment variables
ENV_VARS: Dict[str, EnvVar] = {
    # Target environment
    "ENVIRONMENT": EnvVar(
        name="ENVIRONMENT",
        default="dev",
        choices=["dev", "qa", "prod"],
        description="Named environment preset (config/environments.yaml)",
    ),
    "RUDDERSTACK_BASE_URL": EnvVar(
        name="RUDDERSTACK_BASE_URL",
        default=None,
        pattern=URL_PATTERN,
        description="Web application URL (overrides the preset)",
    ),
    "RUDDERSTACK_DATA_PLANE_URL": EnvVar(
        name="RUDDERSTACK_DATA_PLANE_URL",
        default=None,
        pattern=URL_PATTERN,
        description="Event ingestion URL (overrides the preset)",
    ),
    "REQUEST_CATCHER_URL": EnvVar(
        name="REQUEST_CATCHER_URL",
        default=None,
        pattern=URL_PATTERN,
        description="Webhook collector URL used as the delivery oracle",
    ),
    # Credentials
    "RUDDERSTACK_USERNAME": EnvVar(
        name="RUDDERSTACK_USERNAME", default=None, description="Login email"
    ),
    "RUDDERSTACK_PASSWORD": EnvVar(
        name="RUDDERSTACK_PASSWORD", default=None, sensitive=True, description="Login password"
    ),
    "RUDDERSTACK_WRITE_KEY": EnvVar(
        name="RUDDERSTACK_WRITE_KEY",
        default=None,
        sensitive=True,
        description="Write key of an existing HTTP source",
    ),
    # Browser settings
    "BROWSER": EnvVar(
        name="BROWSER",
        default="chromium",
        choices=["chromium", "firefox", "webkit"],
        description="Browser engine",
    ),
    "HEADLESS": EnvVar(
        name="HEADLESS", default=True, var_type="bool", description="Run the browser headless"
    ),
    "VIEWPORT_WIDTH": EnvVar(
        name="VIEWPORT_WIDTH",
        default=1920,
        var_type="int",
        min_value=320,
        max_value=7680,
        description="Viewport width in pixels",
    ),
    "VIEWPORT_HEIGHT": EnvVar(
        name="VIEWPORT_HEIGHT",
        default=1080,
        var_type="int",
        min_value=240,
        max_value=4320,
        description="Viewport height in pixels",
    ),
    # Timeouts
    "TIMEOUT": EnvVar(
        name="TIMEOUT",
        default=30000,
        var_type="int",
        min_value=1000,
        max_value=600000,
        description="UI action timeout in milliseconds",
    ),
    "API_TIMEOUT": EnvVar(
        name="API_TIMEOUT",
        default=30000,
        var_type="int",
        min_value=100,
        max_value=600000,
        description="Ingestion API timeout in milliseconds",
    ),
    "WEBHOOK_TIMEOUT": EnvVar(
        name="WEBHOOK_TIMEOUT",
        default=10000,
        var_type="int",
        min_value=100,
        max_value=600000,
        description="Webhook collector request timeout in milliseconds",
    ),
    "WEBHOOK_POLL_TIMEOUT": EnvVar(
        name="WEBHOOK_POLL_TIMEOUT",
        default=30.0,
        var_type="float",
        min_value=0,
        max_value=3600,
        description="Seconds to wait for delivery at the webhook",
    ),
    "WEBHOOK_POLL_INTERVAL": EnvVar(
        name="WEBHOOK_POLL_INTERVAL",
        default=2.0,
        var_type="float",
        min_value=0.1,
        max_value=300,
        description="Seconds between webhook polls",
    ),
    # Execution
    "RETRY_COUNT": EnvVar(
        name="RETRY_COUNT",
        default=2,
        var_type="int",
        min_value=0,
        max_value=10,
        description="Extra attempts for flaky UI actions",
    ),
    "PARALLEL_WORKERS": EnvVar(
        name="PARALLEL_WORKERS",
        default=1,
        var_type="int",
        min_value=1,
        max_value=32,
        description="Number of parallel worker processes",
    ),
    "CI": EnvVar(name="CI", default=False, var_type="bool", description="Running in CI"),
    # Diagnostics
    "SCREENSHOTS": EnvVar(
        name="SCREENSHOTS", default=True, var_type="bool", description="Screenshot on failure"
    ),
    "VIDEOS": EnvVar(name="VIDEOS", default=False, var_type="bool", description="Record video"),
    "TRACES": EnvVar(
        name="TRACES", default=False, var_type="bool", description="Record Playwright traces"
    ),
    "LOG_LEVEL": EnvVar(
        name="LOG_LEVEL",
        default="info",
        choices=["debug", "info", "warning", "error"],
        description="Log verbosity",
    ),
    "REPORTS_DIR": EnvVar(
        name="REPORTS_DIR",
        default=None,  # Computed: ./reports
        var_type="path",
        description="Directory for logs, screenshots and reports",
    ),
}


@dataclass(frozen=True)
class Settings:
    """Immutable configuration snapshot shared by every consumer."""

    environment: str
    base_url: str
    data_plane_url: str
    webhook_url: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)
    write_key: Optional[str] = field(default=None, repr=False)
    browser: str = "chromium"
    headless: bool = True
    viewport_width: int = 1920
    viewport_height: int = 1080
    timeout: int = 30000
    api_timeout: int = 30000
    webhook_timeout: int = 10000
    poll_timeout: float = 30.0
    poll_interval: float = 2.0
    retry_count: int = 2
    parallel_workers: int = 1
    ci: bool = False
    screenshots: bool = True
    videos: bool = False
    traces: bool = False
    log_level: str = "info"
    reports_dir: Path = Path("reports")

    SENSITIVE = ("password", "write_key")

    @property
    def credentials(self) -> Dict[str, Optional[str]]:
        return {"email": self.username, "password": self.password}

    @property
    def has_credentials(self) -> bool:
        return bool(self.username and self.password)

    @property
    def action_attempts(self) -> int:
        """Attempts made by the retry wrapper for flaky UI actions."""
        return self.retry_count + 1

    @property
    def timeout_s(self) -> float:
        return self.timeout / 1000

    @property
    def api_timeout_s(self) -> float:
        return self.api_timeout / 1000

    @property
    def webhook_timeout_s(self) -> float:
        return self.webhook_timeout / 1000

    @property
    def logs_dir(self) -> Path:
        return self.reports_dir / "logs"

    @property
    def screenshots_dir(self) -> Path:
        return self.reports_dir / "screenshots"

    @property
    def test_data_dir(self) -> Path:
        return self.reports_dir / "test-data"

    @property
    def videos_dir(self) -> Path:
        return self.reports_dir / "videos"

    def to_dict(self, include_sensitive: bool = False) -> Dict[str, Any]:
        """Get all settings as a dictionary (sensitive values masked)."""
        result = asdict(self)
        result["reports_dir"] = str(self.reports_dir)
        if not include_sensitive:
            for name in self.SENSITIVE:
                result[name] = "***" if result[name] else None
        return result


def load_environment_presets(path: Optional[Path] = None) -> Dict[str, Dict[str, str]]:
    """
    Load named environment presets from YAML.

    Returns:
        Mapping of environment name to {"base_url": ..., "data_plane_url": ...}
    """
    path = Path(path) if path else PRESETS_FILE
    if not path.exists():
        raise ConfigError(f"Environment presets not found: {path}")

    with open(path) as f:
        data = yaml.safe_load(f) or {}

    environments = data.get("environments")
    if not isinstance(environments, dict):
        raise ConfigError(f"{path}: missing 'environments' mapping")
    return environments


def _read_all(environ: Mapping[str, str]) -> tuple[Dict[str, Any], List[str]]:
    """Read every declared variable, collecting errors instead of stopping at the first."""
    values = {}
    errors = []
    for name, env_var in ENV_VARS.items():
        try:
            values[name] = env_var.get_value(environ)
        except ConfigError as e:
            errors.append(str(e))
    return values, errors


def load_settings(
    environ: Optional[Mapping[str, str]] = None,
    dotenv_path: Optional[Union[str, Path]] = None,
    presets_path: Optional[Path] = None,
) -> Settings:
    """
    Build the configuration snapshot.

    Args:
        environ: Mapping to read instead of os.environ. When omitted, a .env
            file is loaded first (existing variables win).
        dotenv_path: Explicit .env location.
        presets_path: Explicit environments YAML location.

    Raises:
        ConfigError: listing every invalid variable
    """
    if environ is None:
        load_dotenv(dotenv_path=dotenv_path, override=False)
        environ = os.environ

    values, errors = _read_all(environ)
    if errors:
        raise ConfigError(
            "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        )

    presets = load_environment_presets(presets_path)
    preset = presets.get(values["ENVIRONMENT"])
    if preset is None:
        raise ConfigError(f"No preset for environment '{values['ENVIRONMENT']}'")

    base_url = values["RUDDERSTACK_BASE_URL"] or preset.get("base_url")
    data_plane_url = values["RUDDERSTACK_DATA_PLANE_URL"] or preset.get("data_plane_url")
    if not base_url:
        raise ConfigError(
            "Base URL is not configured. Set RUDDERSTACK_BASE_URL in your .env file."
        )
    if not data_plane_url:
        raise ConfigError(
            "Data plane URL is not configured. Set RUDDERSTACK_DATA_PLANE_URL in your .env file."
        )

    reports_dir = values["REPORTS_DIR"] or Path.cwd() / "reports"
    parallel_workers = values["PARALLEL_WORKERS"]
    if values["CI"] and parallel_workers > 1:
        logger.info("CI run: forcing a single worker")
        parallel_workers = 1

    return Settings(
        environment=values["ENVIRONMENT"],
        base_url=base_url.rstrip("/"),
        data_plane_url=data_plane_url.rstrip("/"),
        webhook_url=values["REQUEST_CATCHER_URL"],
        username=values["RUDDERSTACK_USERNAME"],
        password=values["RUDDERSTACK_PASSWORD"],
        write_key=values["RUDDERSTACK_WRITE_KEY"],
        browser=values["BROWSER"],
        headless=values["HEADLESS"],
        viewport_width=values["VIEWPORT_WIDTH"],
        viewport_height=values["VIEWPORT_HEIGHT"],
        timeout=values["TIMEOUT"],
        api_timeout=values["API_TIMEOUT"],
        webhook_timeout=values["WEBHOOK_TIMEOUT"],
        poll_timeout=values["WEBHOOK_POLL_TIMEOUT"],
        poll_interval=values["WEBHOOK_POLL_INTERVAL"],
        retry_count=values["RETRY_COUNT"],
        parallel_workers=parallel_workers,
        ci=values["CI"],
        screenshots=values["SCREENSHOTS"],
        videos=values["VIDEOS"] or values["CI"],
        traces=values["TRACES"],
        log_level=values["LOG_LEVEL"],
        reports_dir=Path(reports_dir),
    )


def validate_config(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Validate all environment variables at startup and log the result.

    Raises:
        ConfigError: If any variable is invalid
    """
    try:
        settings = load_settings(environ)
    except ConfigError as e:
        logger.error(str(e))
        raise

    for name, value in settings.to_dict().items():
        logger.debug(f"Config: {name} = {value}")
    logger.info(
        f"Configuration validated: environment={settings.environment} "
        f"base_url={settings.base_url} browser={settings.browser}"
    )
    return settings


def get_env_var_docs() -> str:
    """Generate documentation for all environment variables."""
    lines = ["# Environment Variables\n"]

    categories = {
        "Target": [
            "ENVIRONMENT",
            "RUDDERSTACK_BASE_URL",
            "RUDDERSTACK_DATA_PLANE_URL",
            "REQUEST_CATCHER_URL",
        ],
        "Credentials": ["RUDDERSTACK_USERNAME", "RUDDERSTACK_PASSWORD", "RUDDERSTACK_WRITE_KEY"],
        "Browser": ["BROWSER", "HEADLESS", "VIEWPORT_WIDTH", "VIEWPORT_HEIGHT"],
        "Timeouts": [
            "TIMEOUT",
            "API_TIMEOUT",
            "WEBHOOK_TIMEOUT",
            "WEBHOOK_POLL_TIMEOUT",
            "WEBHOOK_POLL_INTERVAL",
        ],
        "Execution": ["RETRY_COUNT", "PARALLEL_WORKERS", "CI"],
        "Diagnostics": ["SCREENSHOTS", "VIDEOS", "TRACES", "LOG_LEVEL", "REPORTS_DIR"],
    }

    for category, var_names in categories.items():
        lines.append(f"\n## {category}\n")
        lines.append("| Variable | Type | Default | Description |")
        lines.append("|----------|------|---------|-------------|")

        for name in var_names:
            ev = ENV_VARS[name]
            default = "***" if ev.sensitive else (ev.default if ev.default is not None else "-")
            required = " (required)" if ev.required else ""
            lines.append(f"| `{name}` | {ev.var_type} | {default} | {ev.description}{required} |")

    return "\n".join(lines)
