from aibridge.models.enums import AIProvider

MIN_API_KEY_LENGTH = 10

_KEYLESS_PROVIDERS = frozenset({AIProvider.LOCAL, AIProvider.FALLBACK})


def requires_api_key(provider: AIProvider) -> bool:
    return AIProvider(provider) not in _KEYLESS_PROVIDERS


def is_valid_api_key(api_key: str | None) -> bool:
    """Minimal shape check: present and longer than ``MIN_API_KEY_LENGTH``."""
    return bool(api_key) and len(api_key.strip()) > MIN_API_KEY_LENGTH


def mask_api_key(api_key: str | None) -> str:
    if not api_key:
        return "<none>"
    if len(api_key) <= 8:
        return "*" * len(api_key)
    return f"{api_key[:4]}...{api_key[-4:]}"
