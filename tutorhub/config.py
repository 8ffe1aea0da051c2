from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # OpenAI API key (OPENAI_API_KEY)
    openai_api_key: str = ""
    # Anthropic API key (ANTHROPIC_API_KEY)
    anthropic_api_key: str = ""
    # Provider tried first for lesson plans: "claude" or "openai"
    ai_primary_provider: str = "claude"
    openai_model: str = "gpt-4o"
    claude_model: str = "claude-3-5-sonnet-20241022"
    # Cheap models used only by the connection check
    openai_check_model: str = "gpt-4o-mini"
    claude_check_model: str = "claude-3-haiku-20240307"
    ai_max_tokens: int = 4000
    ai_temperature: float = 0.7
    # Database path - can be overridden via DATABASE_PATH env var for Docker
    database_path: str = "tutorhub.db"
    # Environment: "dev" (default) or "prod"
    env: str = "dev"
    # CORS origins (comma-separated)
    cors_origins: str = ""
    # Default analysis window for progress analysis, in weeks
    analysis_timeframe_weeks: int = 4

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


# Credentials are validated when a provider is actually called, so the app
# can boot (and serve analytics) without AI keys configured.
settings = Settings()
