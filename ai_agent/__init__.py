"""AI writing assistant service: multi-provider completions, skills and document patches."""

__version__ = "1.0.0"
