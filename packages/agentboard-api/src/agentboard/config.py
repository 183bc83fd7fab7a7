"""Application configuration via environment variables."""

from functools import lru_cache
from typing import ClassVar, Literal

from pydantic import Field
from pydantic_settings import BaseSettings

from agentboard.schemas.alert import AlertChannel, AlertEvent, AlertRule


def _default_alert_rules() -> list[AlertRule]:
    return [
        AlertRule(event=AlertEvent.AGENT_COMPLETED, channels=[AlertChannel.WEBHOOK]),
        AlertRule(event=AlertEvent.AGENT_ERROR, channels=[AlertChannel.WEBHOOK]),
        AlertRule(event=AlertEvent.AGENT_STARTED, channels=[], enabled=False),
        AlertRule(event=AlertEvent.PROVIDER_DEGRADED, channels=[AlertChannel.WEBHOOK]),
    ]


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    environment: str = "development"
    api_host: str = "0.0.0.0"
    api_port: int = 19850
    cors_origins: str = "*"

    # Polling / aggregation
    poll_interval_seconds: float = Field(default=3.0, gt=0)
    primary_source: Literal["copilot", "claude-code", "both"] = "copilot"
    enabled_providers: dict[str, bool] = Field(default_factory=dict)
    thin_source_ids: list[str] = Field(default_factory=lambda: ["copilot-extension"])
    rich_source_ids: list[str] = Field(
        default_factory=lambda: ["copilot-chat-sessions", "vscode-chat-sessions"]
    )
    cost_per_million_tokens: float = 6.0
    max_activities: int = 50
    state_retention_seconds: int = 86400

    # Alerting
    alerts_enabled: bool = False
    alert_rules: list[AlertRule] = Field(default_factory=_default_alert_rules)
    alert_cooldown_seconds: int = 60
    http_timeout_seconds: int = 10

    # Email channel
    email_provider: Literal["none", "sendgrid", "smtp"] = "none"
    email_to: str = ""
    email_from: str = "agentboard@localhost"
    sendgrid_api_key: str = ""
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""

    # SMS channel
    sms_provider: Literal["none", "twilio"] = "none"
    sms_to: str = ""
    twilio_account_sid: str = ""
    twilio_auth_token: str = ""
    twilio_from: str = ""

    # Webhook channel
    webhook_url: str = ""
    webhook_secret: str = ""

    # Outbound relay push
    relay_url: str = ""
    relay_token: str = ""

    # Relay server
    relay_auth_token: str = "change-me"
    relay_database_url: str = "sqlite+aiosqlite:///./agentboard-relay.db"

    # Built-in sources
    workspace_dirs: list[str] = Field(default_factory=list)
    github_workflows: list[str] = Field(
        default_factory=lambda: [
            "claude.yml",
            "claude.yaml",
            "copilot.yml",
            "agent.yml",
            "ai-agent.yml",
        ]
    )
    feed_urls: list[str] = Field(default_factory=list)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "AGENTBOARD_",
    }

    INSECURE_TOKENS: ClassVar[set[str]] = {
        "change-me",
        "change-me-to-a-random-secret",
        "secret",
        "",
    }

    def validate_production(self) -> None:
        """Raise if running in production with an insecure default relay token."""
        if self.environment == "production" and self.relay_auth_token in self.INSECURE_TOKENS:
            raise RuntimeError(
                "AGENTBOARD_RELAY_AUTH_TOKEN must be changed from default in production. "
                'Generate one: python -c "import secrets; print(secrets.token_hex(32))"'
            )

    def rule_for(self, event: AlertEvent) -> AlertRule | None:
        """Return the first enabled rule with channels for an event, if any."""
        for rule in self.alert_rules:
            if rule.event == event and rule.enabled and rule.channels:
                return rule
        return None


@lru_cache
def get_settings() -> Settings:
    """Return cached settings singleton."""
    return Settings()
