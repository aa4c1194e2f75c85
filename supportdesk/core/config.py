from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import AliasChoices, Field, field_validator
from typing import Any, Literal, Optional


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Jira service account (Basic auth). Older deployments used the
    # REACT_APP_* names shared with the frontend build.
    jira_email: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("jira_email", "REACT_APP_JIRA_EMAIL"),
    )
    jira_api_token: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("jira_api_token", "REACT_APP_JIRA_API_TOKEN"),
    )
    jira_domain: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("jira_domain", "REACT_APP_JIRA_DOMAIN"),
    )

    jira_timeout_seconds: float = 30.0
    jira_retry_attempts: int = 3
    jira_retry_delay_seconds: float = 1.0
    jira_page_size: int = 100

    default_project_key: str = "SUP"

    # External identity provider (Supabase-style auth API)
    identity_provider_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("identity_provider_url", "REACT_APP_SUPABASE_URL"),
    )
    identity_provider_anon_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "identity_provider_anon_key", "REACT_APP_SUPABASE_ANON_KEY"
        ),
    )

    # signs the identity cookie
    app_secret_key: str

    # Identity cookie
    identity_max_age_seconds: int = 60 * 60 * 8  # 8h
    # samesite first: the cookie_secure validator reads it from info.data
    cookie_samesite: Literal["lax", "strict", "none"] = "lax"
    cookie_secure: bool = False  # True in prod (HTTPS)

    env: str = "dev"  # dev / prod
    log_level: str = "INFO"
    enable_debug_routes: bool = False
    enable_ui: bool = True

    @field_validator("cookie_samesite", mode="before")
    @classmethod
    def _validate_samesite(cls, v: Any) -> str:
        vv = str(v).strip().lower()
        if vv not in {"lax", "strict", "none"}:
            raise ValueError("cookie_samesite must be one of: lax, strict, none")
        return vv

    @field_validator("cookie_secure")
    @classmethod
    def _validate_cookie_secure(cls, v: bool, info: Any) -> bool:
        # SameSite=None is rejected by browsers unless Secure is set
        samesite = (info.data.get("cookie_samesite") or "").strip().lower()
        if samesite == "none" and v is not True:
            raise ValueError("cookie_secure must be True when cookie_samesite='none'")
        return v

    @field_validator("app_secret_key")
    @classmethod
    def _validate_secret_key(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("app_secret_key must not be blank")
        return v

    @field_validator("jira_retry_attempts")
    @classmethod
    def _validate_retry_attempts(cls, v: int) -> int:
        if v < 0:
            raise ValueError("jira_retry_attempts must be >= 0")
        return v

    @property
    def jira_browse_url(self) -> Optional[str]:
        if not self.jira_domain:
            return None
        domain = self.jira_domain.strip().rstrip("/")
        if not domain.startswith(("http://", "https://")):
            domain = f"https://{domain}"
        return f"{domain}/browse"


settings = Settings()
