# ABOUTME: Shared Click options and setup helpers for Lectern CLI commands.
# ABOUTME: Provides --api-key and --timeout, folds them into an EnrichmentConfig, and builds the HTTP client.

import click
from pydantic import ValidationError

from lectern.config import EnrichmentConfig, env_var
from lectern.metadata.http import LecternHttpClient

api_key_option = click.option(
    "--api-key",
    envvar=env_var("google_books_api_key"),
    default=None,
    help="Google Books API key (optional; raises the anonymous quota).",
)

timeout_option = click.option(
    "--timeout",
    envvar=env_var("request_timeout"),
    type=click.FloatRange(min=0.0, min_open=True),
    default=None,
    help="Seconds allowed per catalog request, retries included (default: 15).",
)


def _describe_errors(exc: ValidationError) -> str:
    lines = []
    for error in exc.errors():
        field = error["loc"][0] if error["loc"] else ""
        name = env_var(str(field)) if field else "configuration"
        lines.append(f"Invalid value for {name}: {error['msg']}")
    return "\n".join(lines)


def load_config(api_key: str | None, timeout: float | None) -> EnrichmentConfig:
    """Build the enrichment config from the environment plus CLI overrides."""
    try:
        config = EnrichmentConfig()
    except ValidationError as exc:
        raise click.ClickException(_describe_errors(exc)) from exc

    overrides: dict[str, object] = {}
    if api_key:
        overrides["google_books_api_key"] = api_key
    if timeout is not None:
        overrides["request_timeout"] = timeout
    return config.model_copy(update=overrides) if overrides else config


def create_http_client(config: EnrichmentConfig) -> LecternHttpClient:
    """Create the shared HTTP client for both catalogs."""
    return LecternHttpClient(
        timeout=config.request_timeout,
        min_request_interval=config.min_request_interval,
        max_retries=config.max_retries,
    )
