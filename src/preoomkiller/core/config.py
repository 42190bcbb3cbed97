"""
config.py
- Builds the controller Settings from command-line flags, environment variables
  and an optional YAML file, in that order of precedence.
- Settings are resolved once at startup and passed into the controller as plain values.
"""

import argparse
import os
from dataclasses import dataclass

from preoomkiller.core.config_loader import load_yaml
from preoomkiller.core.constants import (
    DEFAULT_API_PORT,
    DEFAULT_INTERVAL_SECONDS,
    DEFAULT_LABEL_SELECTOR,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DEFAULT_THRESHOLD_ANNOTATION,
)
from preoomkiller.core.errors import ConfigError

TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class Settings:
    kubeconfig: str = ""
    master: str = ""
    interval: int = DEFAULT_INTERVAL_SECONDS
    dry_run: bool = False
    debug: bool = False
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS
    namespace: str = ""
    label_selector: str = DEFAULT_LABEL_SELECTOR
    threshold_annotation: str = DEFAULT_THRESHOLD_ANNOTATION
    api_port: int = DEFAULT_API_PORT
    log_json: bool = False

    @property
    def label_key(self):
        return self.label_selector.split("=", 1)[0]

    @property
    def label_value(self):
        return self.label_selector.split("=", 1)[1]


# (setting, environment variable); flags use the setting name
ENV_VARS = {
    "kubeconfig": "KUBECONFIG_PATH",
    "master": "KUBE_MASTER",
    "interval": "PREOOMKILLER_INTERVAL",
    "dry_run": "DRY_RUN",
    "debug": "DEBUG",
    "request_timeout": "PREOOMKILLER_REQUEST_TIMEOUT",
    "namespace": "PREOOMKILLER_NAMESPACE",
    "label_selector": "PREOOMKILLER_LABEL_SELECTOR",
    "threshold_annotation": "PREOOMKILLER_THRESHOLD_ANNOTATION",
    "api_port": "PREOOMKILLER_API_PORT",
    "log_json": "LOG_JSON",
}


def build_parser():
    parser = argparse.ArgumentParser(
        prog="preoomkiller",
        description="Evict pods whose memory usage exceeds their declared threshold",
    )
    parser.add_argument("command", nargs="?", choices=["run", "once"], default="run",
                        help="run: reconcile on an interval until stopped; once: a single cycle")
    parser.add_argument("--config", default=None, help="YAML settings file")
    parser.add_argument("--kubeconfig", default=None, help="absolute path to the kubeconfig file")
    parser.add_argument("--master", default=None, help="master url")
    parser.add_argument("--interval", type=int, default=None, help="Interval (in seconds)")
    parser.add_argument("--dry-run", action="store_true", default=None,
                        help="Log intended evictions without calling the API")
    parser.add_argument("--debug", action="store_true", default=None, help="Enable debug output")
    parser.add_argument("--request-timeout", type=float, default=None,
                        help="Timeout (in seconds) for every Kubernetes API call")
    parser.add_argument("--namespace", default=None, help="Only watch this namespace")
    parser.add_argument("--api-port", type=int, default=None,
                        help="Port for /healthz and /metrics (0 disables)")
    return parser


def _as_bool(name, value):
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    raise ConfigError(f"{name} must be a boolean, got {value!r}")


def _as_number(name, value, kind):
    try:
        return kind(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be a number, got {value!r}") from None


def _resolve(name, args, environ, file_cfg, default):
    flag_value = getattr(args, name, None) if args is not None else None
    if flag_value is not None:
        return flag_value
    env_value = environ.get(ENV_VARS[name])
    if env_value not in (None, ""):
        return env_value
    if name in file_cfg:
        return file_cfg[name]
    return default


def load_settings(args=None, environ=None):
    """
    Resolve controller settings.

    Args:
        args (argparse.Namespace | None): Parsed flags from build_parser().
        environ (Mapping | None): Environment, defaults to os.environ.

    Returns:
        Settings: Validated, immutable settings.

    Raises:
        ConfigError: On unreadable config files or invalid values.
    """
    environ = os.environ if environ is None else environ
    config_path = getattr(args, "config", None) or environ.get("PREOOMKILLER_CONFIG", "")
    file_cfg = load_yaml(config_path)

    defaults = Settings()
    values = {
        name: _resolve(name, args, environ, file_cfg, getattr(defaults, name))
        for name in ENV_VARS
    }

    for name in ("dry_run", "debug", "log_json"):
        values[name] = _as_bool(name, values[name])
    for name in ("interval", "api_port"):
        values[name] = _as_number(name, values[name], int)
    values["request_timeout"] = _as_number("request_timeout", values["request_timeout"], float)
    for name in ("kubeconfig", "master", "namespace", "label_selector", "threshold_annotation"):
        values[name] = str(values[name] or "").strip()

    if values["interval"] <= 0:
        raise ConfigError(f"interval must be positive, got {values['interval']}")
    if values["request_timeout"] <= 0:
        raise ConfigError(f"request_timeout must be positive, got {values['request_timeout']}")
    if not 0 <= values["api_port"] <= 65535:
        raise ConfigError(f"api_port out of range: {values['api_port']}")

    selector = values["label_selector"]
    key, sep, value = selector.partition("=")
    if not sep or not key or not value or "," in selector or "=" in value:
        raise ConfigError(f"label_selector must be a single key=value pair, got {selector!r}")
    if not values["threshold_annotation"]:
        raise ConfigError("threshold_annotation must not be empty")

    return Settings(**values)
