"""
Provisioning settings.

All paths, repository slugs, endpoints and tunables used by the setup steps.
Defaults reproduce the stock buildit + ibah layout; every value can be
overridden through environment variables (see `Settings.from_env`).
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_APT_PACKAGES: Tuple[str, ...] = (
    "build-essential",
    "ca-certificates",
    "curl",
    "git",
    "gnupg",
    "lsb-release",
    "unzip",
    "wget",
    "jq",
)

DEFAULT_IBAH_CONTAINERS: Tuple[str, ...] = (
    "ibah-postgres",
    "ibah-rabbitmq",
    "ibah-server",
    "ibah-worker",
    "ibah-dashboard",
)


@dataclass(frozen=True)
class PluginSpec:
    name: str
    marketplace: str

    @property
    def ref(self) -> str:
        return f"{self.name}@{self.marketplace}"

    @classmethod
    def parse(cls, value: str) -> "PluginSpec":
        name, sep, marketplace = value.strip().partition("@")
        if not sep or not name or not marketplace:
            raise ValueError(f"Invalid plugin spec {value!r}, expected name@marketplace")
        return cls(name=name, marketplace=marketplace)


IBAH_ENV_KEY_HINTS: Dict[str, str] = {
    "VOYAGE_API_KEY": "embeddings (https://dash.voyageai.com)",
    "OPENROUTER_API_KEY": "LLM access (https://openrouter.ai)",
}

DEFAULT_PLUGINS: Tuple[PluginSpec, ...] = (
    PluginSpec("code-simplifier", "claude-plugins-official"),
    PluginSpec("security-guidance", "claude-plugins-official"),
    PluginSpec("security-scanning", "claude-code-workflows"),
)


def _home() -> Path:
    return Path(os.path.expanduser("~"))


@dataclass
class Settings:
    home: Path = field(default_factory=_home)
    dev_root: Optional[Path] = None
    ibah_repo: Optional[Path] = None
    buildit_repo: Optional[Path] = None

    github_user: str = "ticky74"
    ibah_github_repo: str = "ticky74/ibah-archaeologist-series"
    buildit_github_repo: str = "ticky74/buildit"

    mcp_server_name: str = "ibah"
    ibah_server_url: str = "http://localhost:3100"
    ibah_api_key: str = "dev-local-key"
    ibah_dashboard_url: str = "http://localhost:3000"
    rabbitmq_admin_url: str = "http://localhost:15672"
    postgres_address: str = "localhost:5432"
    postgres_user: str = "archeologist"
    local_dev_password: str = "local-dev"
    ibah_containers: Tuple[str, ...] = DEFAULT_IBAH_CONTAINERS
    ibah_required_env_keys: Tuple[str, ...] = ("VOYAGE_API_KEY", "OPENROUTER_API_KEY")

    compose_settle_seconds: float = 10.0
    postgres_wait_attempts: int = 30
    postgres_wait_interval: float = 2.0

    apt_packages: Tuple[str, ...] = DEFAULT_APT_PACKAGES
    plugins: Tuple[PluginSpec, ...] = DEFAULT_PLUGINS

    windows_home: Optional[Path] = None
    wsl_conf_path: Path = Path("/etc/wsl.conf")
    windows_users_root: Path = Path("/mnt/c/Users")
    wsl_memory: str = "20GB"
    wsl_swap: str = "4GB"
    wsl_processors: int = 4

    linuxbrew_prefix: Path = Path("/home/linuxbrew/.linuxbrew")

    def __post_init__(self) -> None:
        if self.dev_root is None:
            self.dev_root = self.home / "Dev" / "kode4"
        if self.ibah_repo is None:
            self.ibah_repo = self.dev_root / "ibah-archaeologist-series"
        if self.buildit_repo is None:
            self.buildit_repo = self.dev_root / "buildit"
        if self.wsl_processors < 1:
            raise ValueError("wsl_processors must be a positive integer")
        if self.postgres_wait_attempts < 1:
            raise ValueError("postgres_wait_attempts must be at least 1")

    # ------------------------------------------------------------------
    # Derived paths
    # ------------------------------------------------------------------

    @property
    def claude_dir(self) -> Path:
        return self.home / ".claude"

    @property
    def claude_subdirs(self) -> List[Path]:
        return [self.claude_dir / "plugins", self.claude_dir / "projects"]

    @property
    def bashrc(self) -> Path:
        return self.home / ".bashrc"

    @property
    def bun_install_dir(self) -> Path:
        return self.home / ".bun"

    @property
    def mcp_entrypoint(self) -> Path:
        return self.ibah_repo / "packages" / "ibah-mcp" / "src" / "index.ts"

    @property
    def ibah_infra_dir(self) -> Path:
        return self.ibah_repo / "infra"

    @property
    def buildit_mcp_file(self) -> Path:
        return self.buildit_repo / ".mcp.json"

    @property
    def buildit_claude_settings(self) -> Path:
        return self.buildit_repo / ".claude" / "settings.local.json"

    @property
    def postgres_container(self) -> str:
        return self.ibah_containers[0]

    @property
    def ibah_health_urls(self) -> List[str]:
        base = self.ibah_server_url.rstrip("/")
        return [f"{base}/api/v1/health", base]

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from environment variables.

        Unset variables keep their defaults. Numeric values and plugin specs
        are validated eagerly.

        Raises:
            ValueError: If a variable holds an invalid value
        """
        env = os.environ if env is None else env
        overrides: Dict[str, object] = {}

        def _path(key: str, attr: str) -> None:
            if env.get(key):
                overrides[attr] = Path(os.path.expanduser(env[key]))

        def _str(key: str, attr: str) -> None:
            if env.get(key):
                overrides[attr] = env[key]

        def _number(key: str, attr: str, kind: type) -> None:
            raw = env.get(key)
            if not raw:
                return
            try:
                overrides[attr] = kind(raw)
            except ValueError:
                raise ValueError(f"{key} must be a {kind.__name__}, got {raw!r}") from None

        _path("BUILDIT_HOME", "home")
        _path("BUILDIT_DEV_ROOT", "dev_root")
        _path("BUILDIT_IBAH_REPO", "ibah_repo")
        _path("BUILDIT_REPO", "buildit_repo")
        _path("BUILDIT_WINDOWS_HOME", "windows_home")
        _str("BUILDIT_GITHUB_USER", "github_user")
        _str("IBAH_SERVER_URL", "ibah_server_url")
        _str("IBAH_API_KEY", "ibah_api_key")
        _str("BUILDIT_WSL_MEMORY", "wsl_memory")
        _str("BUILDIT_WSL_SWAP", "wsl_swap")
        _number("BUILDIT_WSL_PROCESSORS", "wsl_processors", int)
        _number("BUILDIT_POSTGRES_WAIT_ATTEMPTS", "postgres_wait_attempts", int)
        _number("BUILDIT_POSTGRES_WAIT_INTERVAL", "postgres_wait_interval", float)
        _number("BUILDIT_COMPOSE_SETTLE_SECONDS", "compose_settle_seconds", float)

        if env.get("BUILDIT_CLAUDE_PLUGINS"):
            overrides["plugins"] = tuple(
                PluginSpec.parse(item)
                for item in env["BUILDIT_CLAUDE_PLUGINS"].split(",")
                if item.strip()
            )

        user = overrides.get("github_user")
        if isinstance(user, str):
            overrides["ibah_github_repo"] = f"{user}/ibah-archaeologist-series"
            overrides["buildit_github_repo"] = f"{user}/buildit"

        settings = cls(**overrides)  # type: ignore[arg-type]
        logger.debug("Loaded settings (dev_root=%s)", settings.dev_root)
        return settings
