"""Application configuration."""

import os
from pathlib import Path

# Bundled skill library shipped with the package
DEFAULT_SKILLS_DIR = str(Path(__file__).parent / "skills" / "library")


class Config:
    """Base configuration."""

    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-key-change-in-production")
    DEBUG = False
    TESTING = False

    # Default provider/model used when a request does not name one
    AI_PROVIDER = os.environ.get("AI_PROVIDER", "anthropic")
    AI_MODEL = os.environ.get("AI_MODEL", "claude-sonnet-4")
    AI_MAX_TOKENS = int(os.environ.get("AI_MAX_TOKENS", "4096"))
    AI_TEMPERATURE = float(os.environ.get("AI_TEMPERATURE", "0.7"))

    # Anthropic
    ANTHROPIC_API_KEY = os.environ.get("ANTHROPIC_API_KEY")

    # OpenAI Configuration
    OPENAI_API_KEY = os.environ.get("OPENAI_API_KEY")
    OPENAI_MODEL = os.environ.get("OPENAI_MODEL", "gpt-4o")
    OPENAI_BASE_URL = os.environ.get("OPENAI_BASE_URL")

    # DeepSeek (OpenAI-compatible API)
    DEEPSEEK_API_KEY = os.environ.get("DEEPSEEK_API_KEY")
    DEEPSEEK_MODEL = os.environ.get("DEEPSEEK_MODEL", "deepseek-chat")
    DEEPSEEK_BASE_URL = os.environ.get("DEEPSEEK_BASE_URL", "https://api.deepseek.com")

    # Ollama (local, no API key)
    ENABLE_OLLAMA = os.environ.get("ENABLE_OLLAMA", "false").lower() == "true"
    OLLAMA_BASE_URL = os.environ.get("OLLAMA_BASE_URL", "http://localhost:11434")
    OLLAMA_MODEL = os.environ.get("OLLAMA_MODEL", "llama3.2")

    # Seconds each provider health probe may take before it is reported unhealthy
    PROVIDER_HEALTH_TIMEOUT = float(os.environ.get("PROVIDER_HEALTH_TIMEOUT", "5"))

    # Skill library
    SKILLS_DIRS = [
        path
        for path in os.environ.get("SKILLS_DIRS", DEFAULT_SKILLS_DIR).split(os.pathsep)
        if path
    ]
    SKILL_MAX_TOKENS = int(os.environ.get("SKILL_MAX_TOKENS", "8192"))

    # Default system prompt for free-form chat
    DEFAULT_SYSTEM_PROMPT = os.environ.get(
        "DEFAULT_SYSTEM_PROMPT",
        "You are a scientific writing assistant integrated into a collaborative "
        "LaTeX editor. LaTeX is your default format for document content.",
    )


class DevelopmentConfig(Config):
    """Development configuration."""

    DEBUG = True


class ProductionConfig(Config):
    """Production configuration."""

    DEBUG = False


class TestingConfig(Config):
    """Testing configuration."""

    TESTING = True
    # Use mock provider in tests
    AI_PROVIDER = "mock"
    AI_MODEL = "mock-model"
    ANTHROPIC_API_KEY = None
    OPENAI_API_KEY = None
    DEEPSEEK_API_KEY = None
    ENABLE_OLLAMA = False
    PROVIDER_HEALTH_TIMEOUT = 2.0
    SKILLS_DIRS = [DEFAULT_SKILLS_DIR]
