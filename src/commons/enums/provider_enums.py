from enum import Enum


class AIProvider(str, Enum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GOOGLE = "google"
    XAI = "xai"
    DEEPSEEK = "deepseek"
    CUSTOM = "custom"

    @classmethod
    def parse(cls, value: str) -> "AIProvider | None":
        try:
            return cls(value.lower())
        except (ValueError, AttributeError):
            return None


class ApiKeyStatusLabel(str, Enum):
    VALID = "valid"
    MISSING = "missing"
    INVALID = "invalid"
