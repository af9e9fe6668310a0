from pydantic import model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # App
    environment: str = "development"
    log_level: str = "INFO"
    log_format: str = "json"

    # Identity provider
    identity_backend: str = "supabase"  # "supabase" | "jwt"
    supabase_url: str = "http://localhost:54321"
    supabase_anon_key: str = "dev-anon-key"
    supabase_service_role_key: str = ""
    supabase_jwt_secret: str = "dev-jwt-secret-change-in-production"
    jwt_audience: str = "authenticated"
    session_cookie_name: str = "sb-access-token"
    identity_timeout_seconds: float = 2.0

    # Redis
    redis_url: str = "redis://localhost:6379/0"

    # Security
    allowed_origins: str = "http://localhost:3000,http://localhost"
    rate_limit_enabled: bool = True
    rate_limit_per_minute: int = 60
    rate_limited_prefixes: str = "/api/"

    model_config = {"env_file": ".env", "extra": "ignore"}

    @model_validator(mode="after")
    def _validate_production(self):
        if self.identity_backend not in ("supabase", "jwt"):
            raise ValueError(
                f"Unknown IDENTITY_BACKEND '{self.identity_backend}' (expected 'supabase' or 'jwt')"
            )
        if self.environment == "production":
            if self.identity_backend == "jwt" and \
                    self.supabase_jwt_secret == "dev-jwt-secret-change-in-production":
                raise ValueError(
                    "Production requires a non-default SUPABASE_JWT_SECRET"
                )
            if self.supabase_anon_key == "dev-anon-key":
                raise ValueError(
                    "Production requires SUPABASE_ANON_KEY"
                )
        return self

    @property
    def rate_limited_path_prefixes(self) -> tuple[str, ...]:
        return tuple(p.strip() for p in self.rate_limited_prefixes.split(",") if p.strip())


settings = Settings()
