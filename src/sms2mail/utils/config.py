import os
import sys
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from sms2mail.utils.logger import get_logger

logger = get_logger("config")

SYSTEM_CONFIG_PATH = Path("/etc/sms2mail.toml")
LOCAL_CONFIG_PATH = Path("config.toml")
USER_CONFIG_NAME = "sms2mail.toml"
PROFILE_DIR_NAME = "sms2mail.d"

CONFIG_TEMPLATE = """# Server settings
server_port = ":8080"
"""

PROFILE_TEMPLATE = """# Email Configuration for profile
# Ensure this 'From' address is allowed by your msmtp configuration (provider)
email_from = "sms-notifier@yourserver.com"
email_to = "youremail@example.com"

# Optional: Specify which msmtp account/profile to use
# If not specified, defaults to "default"
# msmtp_profile = "default"
"""


class ConfigError(RuntimeError):
    """Configuration could not be found, read or parsed."""


class ProfileError(ConfigError):
    """A per-profile configuration is missing, malformed or not a valid name."""


@dataclass(frozen=True)
class GlobalConfig:
    server_port: str = ":8080"
    # Single-tenant routing, used by POST /sms
    email_from: str = ""
    email_to: str = ""
    twilio_auth_token: str = ""
    msmtp_path: str = "msmtp"
    config_dir: Path = field(default=Path("."), compare=False)

    def listen_address(self) -> Tuple[str, int]:
        """
        Split `server_port` ("[host]:port", IPv6 hosts in brackets) into a
        (host, port) pair.
        An empty host means all interfaces.
        """
        host, sep, port = self.server_port.rpartition(":")
        if not sep:
            port = self.server_port
        if host.startswith("[") and host.endswith("]"):
            host = host[1:-1]
        try:
            return host or "0.0.0.0", int(port)
        except ValueError:
            raise ConfigError(f"Invalid server_port '{self.server_port}'")


@dataclass(frozen=True)
class ProfileConfig:
    email_from: str = ""
    email_to: str = ""
    msmtp_profile: str = "default"


def user_config_dir() -> Optional[Path]:
    """
    OS-conventional per-user configuration directory, or None if it
    cannot be determined.
    """
    if sys.platform == "win32":
        appdata = os.getenv("APPDATA")
        return Path(appdata) if appdata else None

    if sys.platform == "darwin":
        home = os.getenv("HOME")
        return Path(home, "Library", "Application Support") if home else None

    xdg = os.getenv("XDG_CONFIG_HOME")
    if xdg and os.path.isabs(xdg):
        return Path(xdg)
    home = os.getenv("HOME")
    return Path(home, ".config") if home else None


def default_candidates() -> List[Path]:
    candidates = [SYSTEM_CONFIG_PATH]
    user_dir = user_config_dir()
    if user_dir is not None:
        candidates.append(user_dir / USER_CONFIG_NAME)
    candidates.append(LOCAL_CONFIG_PATH)
    return candidates


def find_config(explicit_path: Optional[str] = None, candidates: Optional[List[Path]] = None) -> Path:
    """
    Pick the global configuration file.

    An explicit path always wins, whether or not it exists. Otherwise the
    first existing file among the candidates (system, per-user, current
    directory) is used. Raises ConfigError if none exists.
    """
    if explicit_path:
        logger.info("config.explicit_path", extra={"path": explicit_path})
        return Path(explicit_path)

    if candidates is None:
        candidates = default_candidates()

    for candidate in candidates:
        if candidate.is_file():
            logger.info("config.found", extra={"path": str(candidate)})
            return candidate

    searched = [str(c) for c in candidates]
    logger.error("config.not_found", extra={"candidates": searched})
    raise ConfigError("No configuration file found in " + ", ".join(searched))


def _read_toml(path: Path, error_cls) -> Dict[str, Any]:
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except OSError as e:
        raise error_cls(f"Failed to read config '{path}': {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise error_cls(f"Failed to parse config '{path}': {e}") from e


def _string_fields(data: Dict[str, Any], names, path: Path, error_cls) -> Dict[str, str]:
    values = {}
    for name in names:
        if name not in data:
            continue
        value = data[name]
        if not isinstance(value, str):
            raise error_cls(f"Invalid value for '{name}' in '{path}': expected a string")
        values[name] = value
    return values


def load_global_config(path) -> GlobalConfig:
    """
    Load the global configuration from a TOML file.

    Unknown keys are ignored. Raises ConfigError if the file cannot be
    read or parsed.
    """
    path = Path(path)
    data = _read_toml(path, ConfigError)
    values = _string_fields(
        data,
        ("server_port", "email_from", "email_to", "twilio_auth_token", "msmtp_path"),
        path,
        ConfigError,
    )
    config = GlobalConfig(config_dir=path.parent, **values)
    logger.info(
        "config.loaded",
        extra={
            "path": str(path),
            "server_port": config.server_port,
            "signature_validation": bool(config.twilio_auth_token),
        },
    )
    return config


def is_valid_profile_name(name: str) -> bool:
    if not name or name.startswith("."):
        return False
    return "/" not in name and "\\" not in name and "\x00" not in name


def profile_path(config_dir: Path, name: str) -> Path:
    return Path(config_dir) / PROFILE_DIR_NAME / f"{name}.toml"


def load_profile_config(config_dir: Path, name: str) -> ProfileConfig:
    """
    Load `<config_dir>/sms2mail.d/<name>.toml`.

    Read fresh on every call. Raises ProfileError for invalid names and
    for missing or malformed files.
    """
    if not is_valid_profile_name(name):
        raise ProfileError(f"Invalid profile name '{name}'")

    path = profile_path(config_dir, name)
    data = _read_toml(path, ProfileError)
    values = _string_fields(data, ("email_from", "email_to", "msmtp_profile"), path, ProfileError)
    if not values.get("msmtp_profile"):
        values.pop("msmtp_profile", None)
    return ProfileConfig(**values)
