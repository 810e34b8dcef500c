"""Settings — Pydantic-based configuration with YAML and env var support.

Configuration is loaded from (in order of precedence):
  1. Environment variables (ESDATA_ prefix)
  2. YAML config file (if specified)
  3. Default values
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings

from esdata.models.query import RefreshPolicy


class ElasticsearchSettings(BaseModel):
    """Connection settings of the Elasticsearch client."""

    hosts: list[str] = Field(default_factory=lambda: ["http://localhost:9200"], description="Cluster node URLs")
    cloud_id: str | None = Field(default=None, description="Elastic Cloud deployment id")
    api_key: str | None = Field(default=None, description="Encoded API key")
    username: str | None = Field(default=None, description="Basic auth username")
    password: str | None = Field(default=None, description="Basic auth password")
    bearer_auth: str | None = Field(default=None, description="Bearer token")
    verify_certs: bool | None = Field(default=None, description="Verify TLS certificates")
    ca_certs: str | None = Field(default=None, description="Path to the CA bundle")
    request_timeout: float | None = Field(default=None, description="Request timeout in seconds")
    max_retries: int | None = Field(default=None, description="Retries per request")
    retry_on_timeout: bool | None = Field(default=None, description="Retry requests that timed out")
    extra: dict[str, Any] = Field(default_factory=dict, description="Further Elasticsearch client options")

    @field_validator("hosts", mode="before")
    @classmethod
    def _parse_hosts(cls, v: Any) -> list[str]:
        """Parse hosts from JSON string (env var), comma-separated string or list."""
        if isinstance(v, str):
            import json

            try:
                parsed = json.loads(v)
                if isinstance(parsed, list):
                    return [str(h) for h in parsed]
            except (json.JSONDecodeError, TypeError):
                pass
            return [h.strip() for h in v.split(",") if h.strip()]
        return list(v)


class TemplateSettings(BaseModel):
    """Behavior of ``ElasticsearchTemplate``."""

    refresh_policy: RefreshPolicy | None = Field(default=None, description="Refresh policy of writes")
    routing: str | None = Field(default=None, description="Default routing")
    stream_scroll_time_ms: int = Field(default=60_000, ge=1, description="Scroll window of search_for_stream")


class ObservabilitySettings(BaseModel):
    """Observability configuration."""

    log_level: str = Field(default="info", description="Log level: debug, info, warning, error")
    log_format: str = Field(default="json", description="Log format: json, console")


class Settings(BaseSettings):
    """Root settings.

    Configuration is loaded from environment variables with the ESDATA_ prefix.
    Nested settings use double underscores.

    Example:
        ESDATA_ELASTICSEARCH__HOSTS=http://es1:9200,http://es2:9200
        ESDATA_TEMPLATE__REFRESH_POLICY=wait_until
        ESDATA_OBSERVABILITY__LOG_FORMAT=console
    """

    model_config = {
        "env_prefix": "ESDATA_",
        "env_nested_delimiter": "__",
        "case_sensitive": False,
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }

    elasticsearch: ElasticsearchSettings = Field(default_factory=ElasticsearchSettings)
    template: TemplateSettings = Field(default_factory=TemplateSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    @classmethod
    def from_yaml(cls, path: str | Path) -> Settings:
        """Load settings from a YAML configuration file.

        Values from the YAML file are used as defaults; environment variables
        still take precedence.

        Args:
            path: Path to the YAML config file.

        Returns:
            Populated Settings instance.
        """
        import yaml  # type: ignore[import-untyped]

        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path) as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)
