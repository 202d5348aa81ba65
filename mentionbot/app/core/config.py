from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_SYSTEM_PROMPT = (
    "You are a friendly, laid-back chat companion hanging out in a community "
    "channel. Keep answers short and punchy so they read well in chat, use a "
    "casual tone, and admit it with humour when you do not know something. "
    "Use the web search tool when you need fresh information."
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be configured via environment variables or .env file.
    """

    # Debug mode - enables detailed error responses
    debug: bool = False

    # Completion service (OpenAI-compatible chat endpoint)
    deepseek_api_key: str = ""
    deepseek_url: str = "https://api.deepseek.com/chat/completions"
    deepseek_model: str = "deepseek-chat"
    deepseek_temperature: float = 1.3  # 0.0 - 1.5, higher is more creative

    # Web search tool (Tavily)
    tavily_api_key: str = ""
    tavily_url: str = "https://api.tavily.com/search"
    search_enabled: bool = True
    search_timeout: float = 5.0  # Must stay well below completion_deadline

    # Time bounds
    transport_timeout: float = 60.0  # Single completion attempt
    completion_deadline: float = 90.0  # Both phases combined

    # Per-user rate limiting (sliding window)
    rate_limit_requests: int = 5
    rate_limit_window_seconds: float = 60.0

    # Mention handling
    bot_user_id: str = ""
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    history_limit: int = 20
    reply_max_length: int = 2000  # Platform message size limit

    # Ingress authentication; empty disables the check
    ingress_token: str = ""

    # HTTP Client connection pool settings
    httpx_connect_timeout: float = 10.0
    httpx_read_timeout: float = 60.0
    httpx_write_timeout: float = 10.0
    httpx_pool_timeout: float = 5.0
    httpx_keepalive_expiry: float = 30.0
    httpx_max_connections: int = 100
    httpx_max_keepalive_connections: int = 20

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "text"  # text | structured | json

    @property
    def search_available(self) -> bool:
        """Web search is offered to the model only when enabled and keyed."""
        return self.search_enabled and bool(self.tavily_api_key)

    @field_validator("rate_limit_requests", "history_limit")
    @classmethod
    def validate_count_positive(cls, v: int) -> int:
        """Validate count values are positive."""
        if v < 1:
            raise ValueError("Count values must be at least 1")
        return v

    @field_validator("reply_max_length")
    @classmethod
    def validate_reply_length(cls, v: int) -> int:
        """Leave room for the truncation marker."""
        if v < 4:
            raise ValueError("reply_max_length must be at least 4")
        return v

    @field_validator(
        "rate_limit_window_seconds",
        "search_timeout",
        "transport_timeout",
        "completion_deadline",
        "httpx_connect_timeout",
        "httpx_read_timeout",
    )
    @classmethod
    def validate_timeout_positive(cls, v: float) -> float:
        """Validate duration values are positive."""
        if v <= 0:
            raise ValueError("Duration values must be positive")
        return v

    @field_validator("deepseek_temperature")
    @classmethod
    def validate_temperature(cls, v: float) -> float:
        if not 0.0 <= v <= 2.0:
            raise ValueError("deepseek_temperature must be between 0.0 and 2.0")
        return v

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


# Global settings instance
settings = Settings()
