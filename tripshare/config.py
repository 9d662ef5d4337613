"""TripShare access server configuration."""

import secrets
from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Server
    server_name: str = "TripShare Access Server"
    host: str = "0.0.0.0"
    port: int = 8080
    debug: bool = False

    # Paths
    data_dir: Path = Path.home() / "tripshare" / "data"

    # Database
    db_path: Path = Path.home() / "tripshare" / "data" / "tripshare.db"

    # JWT (issued by the external login service, verified here)
    jwt_secret: str = ""
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 1440  # 24 hours

    # Invites
    invite_ttl_days: int = 7
    invite_code_attempts: int = 3  # retries on code collision

    # Rate limiting (public invite validation)
    rate_limit_window_seconds: int = 60
    rate_limit_max_requests: int = 5
    rate_limit_sweep_seconds: int = 60
    trust_proxy_headers: bool = False  # only behind a trusted reverse proxy

    model_config = {"env_prefix": "TRIPSHARE_"}

    def ensure_dirs(self) -> None:
        """Create all required directories."""
        for d in [self.data_dir, self.db_path.parent]:
            d.mkdir(parents=True, exist_ok=True)

    def ensure_secrets(self) -> None:
        """Generate the JWT secret if not set, persist it so tokens survive restarts."""
        secrets_file = self.data_dir / ".secrets"
        saved = {}
        if secrets_file.exists():
            for line in secrets_file.read_text().strip().splitlines():
                if "=" in line:
                    k, v = line.split("=", 1)
                    saved[k.strip()] = v.strip()

        if not self.jwt_secret:
            self.jwt_secret = saved.get("jwt_secret", "") or secrets.token_urlsafe(32)

        secrets_file.write_text(f"jwt_secret={self.jwt_secret}\n")


settings = Settings()
settings.ensure_dirs()
settings.ensure_secrets()
