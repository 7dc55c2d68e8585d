from pydantic_settings import BaseSettings


class Config(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str
    host: str = "0.0.0.0"  # noqa: S104
    port: int = 3000
    debug: bool = False
    cors_origins: list[str] = []
    frontend_url: str = "http://localhost:5173"  # URL of the frontend application
    attachments_path: str  # Directory path for storing uploaded files
    attachments_url: str = "/api/v1/attachments"  # Public URL prefix for stored files
    recaptcha_secret_key: str = ""
    recaptcha_verify_url: str = "https://www.google.com/recaptcha/api/siteverify"
    captcha_enabled: bool = True  # Disable only for local development
    captcha_timeout: float = 10.0  # Seconds to wait for the verification service
    strict_cursor: bool = False  # Reject unknown cursors instead of restarting from the first page
    # Build metadata injected during Docker build via environment variables
    git_commit_hash: str = "unknown"  # Git commit hash at build time (for debugging deployments)
    git_commit_date: str = "unknown"  # Git commit date at build time (for tracking release timeline)
    build_time: str = "unknown"  # Docker image build timestamp (for identifying exact build)

    model_config = {
        "env_file": [".env"],
        "env_prefix": "COMMENTBOARD_",
        "extra": "ignore",
    }
