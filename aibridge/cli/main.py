"""aibridge CLI entry point.

    aibridge ask "prompt"      -> one-shot query against the chosen provider
    aibridge providers         -> list providers and key status
    aibridge image "prompt"    -> generate an image (OpenAI only)

Keys and defaults come from the environment or a ``.env`` file.
"""

from __future__ import annotations

import asyncio
import time

import click
import sentry_sdk

from aibridge import __version__
from aibridge.cli import output as out
from aibridge.core.config import DEFAULT_MODELS, get_settings
from aibridge.core.errors import AIClientError, APIError, APIKeyNotConfiguredError
from aibridge.core.keys import is_valid_api_key, requires_api_key
from aibridge.models.enums import AIProvider, MessageRole
from aibridge.schemas.config import AIConfig
from aibridge.schemas.images import ImageGenerationRequest
from aibridge.services.ai_client import AIClient
from aibridge.services.providers_base import ChatMessage, StreamCallbacks

_PROVIDER_CHOICE = click.Choice([p.value for p in AIProvider])


def _build_messages(prompt: str, system: str | None) -> list[ChatMessage]:
    messages = []
    if system:
        messages.append(ChatMessage(MessageRole.SYSTEM, system))
    messages.append(ChatMessage(MessageRole.USER, prompt))
    return messages


def _report(exc: Exception) -> None:
    if isinstance(exc, APIKeyNotConfiguredError):
        env_var = {
            AIProvider.OPENAI: "OPENAI_API_KEY",
            AIProvider.CLAUDE: "ANTHROPIC_API_KEY",
            AIProvider.GEMINI: "GEMINI_API_KEY",
        }.get(exc.provider)
        out.print_error(
            str(exc),
            suggestion=f"Set {env_var} or pass --api-key" if env_var else None,
        )
    elif isinstance(exc, APIError):
        out.print_error(
            f"API error: {exc.status_code}",
            detail=exc.body[:200] if exc.body else None,
            suggestion="Check your API key and model name",
        )
    else:
        out.print_error(f"Request failed: {exc}")


# ---------------------------------------------------------------------------
# One-shot helpers
# ---------------------------------------------------------------------------


async def _ask_streaming(client: AIClient, messages: list[ChatMessage]) -> bool:
    display = out.StreamingDisplay()
    failure: list[Exception] = []

    display.start()
    await client.chat_stream(
        messages,
        StreamCallbacks(on_token=display.token, on_error=failure.append),
    )
    display.finish()

    if failure:
        _report(failure[0])
        return False
    out.print_response_footer(elapsed=display.elapsed)
    return True


async def _ask_once(client: AIClient, messages: list[ChatMessage]) -> bool:
    started = time.monotonic()
    try:
        response = await client.chat(messages)
    except AIClientError as exc:
        _report(exc)
        return False

    out.print_response(response.message)
    out.print_response_footer(
        usage=response.usage,
        elapsed=time.monotonic() - started,
        finish_reason=response.finish_reason.value if response.finish_reason else None,
    )
    return True


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="aibridge")
@click.option("--log-level", default=None, help="Override LOG_LEVEL for this run")
def cli(log_level: str | None) -> None:
    """aibridge: one chat interface over OpenAI, Claude and Gemini."""
    settings = get_settings()
    out.setup_logging(log_level or settings.log_level)
    if settings.sentry_dsn:
        sentry_sdk.init(dsn=settings.sentry_dsn, traces_sample_rate=0.2)


# ---------------------------------------------------------------------------
# ask: one-shot prompt
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("prompt")
@click.option("--provider", "-p", type=_PROVIDER_CHOICE, default=None, help="Provider (default: DEFAULT_PROVIDER)")
@click.option("--model", "-m", default=None, help="Model name for the provider")
@click.option("--api-key", default=None, help="API key for the provider")
@click.option("--system", "-s", default=None, help="System prompt")
@click.option("--stream/--no-stream", default=True, help="Stream tokens as they arrive")
def ask(prompt: str, provider: str | None, model: str | None, api_key: str | None, system: str | None, stream: bool) -> None:
    """Send a one-shot prompt and print the response."""
    settings = get_settings()
    client = AIClient(
        AIConfig(provider=provider or settings.default_provider, model=model, api_key=api_key),
        settings=settings,
    )
    config = client.get_config()
    out.print_banner(provider=config.provider.value, model=config.model, key_set=client.has_valid_api_key())

    if not client.is_configured():
        _report(APIKeyNotConfiguredError(config.provider))
        raise SystemExit(1)

    runner = _ask_streaming if stream else _ask_once
    if not asyncio.run(runner(client, _build_messages(prompt, system))):
        raise SystemExit(1)


# ---------------------------------------------------------------------------
# providers: list providers and key status
# ---------------------------------------------------------------------------


@cli.command()
def providers() -> None:
    """List supported providers and whether a key is configured."""
    settings = get_settings()
    rows = []
    for provider in AIProvider:
        needs_key = requires_api_key(provider)
        has_key = needs_key and is_valid_api_key(settings.api_key_for(provider))
        rows.append((provider.value, DEFAULT_MODELS[provider], needs_key, has_key))
    out.print_providers(rows)


# ---------------------------------------------------------------------------
# image: OpenAI image generation
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("prompt")
@click.option("--api-key", default=None, help="OpenAI API key")
@click.option("--size", default="1024x1024", show_default=True)
@click.option("--quality", type=click.Choice(["standard", "hd"]), default="standard", show_default=True)
@click.option("--count", "-n", default=1, type=int, show_default=True)
def image(prompt: str, api_key: str | None, size: str, quality: str, count: int) -> None:
    """Generate images from a prompt and print their URLs."""
    settings = get_settings()
    client = AIClient(AIConfig(provider=AIProvider.OPENAI, api_key=api_key), settings=settings)

    try:
        request = ImageGenerationRequest(prompt=prompt, size=size, quality=quality, n=count)
    except ValueError as exc:
        out.print_error("Invalid image request", detail=str(exc))
        raise SystemExit(2)

    out.console.print(f"[muted]Generating with {settings.image_model}...[/]")
    try:
        result = asyncio.run(client.generate_image(request))
    except AIClientError as exc:
        _report(exc)
        raise SystemExit(1)

    for url in result.images:
        out.console.print(url, soft_wrap=True)
    for revised in result.revised_prompts:
        out.print_info(f"revised prompt: {revised}")


if __name__ == "__main__":
    cli()
