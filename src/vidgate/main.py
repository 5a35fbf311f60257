"""Composition root and command-line entry point.

main lives at the outermost layer (not in core): it instantiates the concrete
adapters, wires them into the managers and owns the HTTP session lifetime.

Example:
  vidgate pixverse "a paper boat drifting down a rainy street" --aspect-ratio 16:9 --duration 5
  vidgate runway "slow dolly in" --image still.jpg --aspect-ratio 1280:720 --duration 5
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Dict, List, Optional

from rich.console import Console

from vidgate.adapters.aiohttp_client_adapter import AioHttpClientAdapter
from vidgate.adapters.job_registry_inmemory import InMemoryJobRegistry
from vidgate.adapters.provider_config_file_adapter import ProviderConfigFileAdapter
from vidgate.adapters.providers.pixverse import PixVerseAdapter
from vidgate.adapters.providers.runway import RunwayAdapter
from vidgate.adapters.providers.veo import VeoAdapter
from vidgate.adapters.providers.vidu import ViduAdapter
from vidgate.adapters.retry_tenacity import TenacityRetryAdapter
from vidgate.core.config import PollingEngineConfig
from vidgate.core.exceptions import VideoGenerationError
from vidgate.core.interfaces.http_client import HttpClientPort
from vidgate.core.interfaces.job_registry import JobRegistryPort
from vidgate.core.interfaces.observers import JobStateObserver
from vidgate.core.interfaces.provider_adapter import ProviderAdapterPort
from vidgate.core.interfaces.provider_config import ProviderConfigPort
from vidgate.core.logging_config import configure_logging
from vidgate.core.managers.dispatcher import VideoDispatcher
from vidgate.core.managers.observers import LoggingObserver
from vidgate.core.managers.polling_engine import PollingEngine
from vidgate.core.managers.status_normalizer import StatusNormalizer
from vidgate.core.models.generation_request import GenerationRequest
from vidgate.core.models.job import JobState, NormalizedResult, ProviderName
from vidgate.core.settings import VidgateSettings, app_settings, logger


class Gateway:
    """Owns the wired object graph and the resources it holds.

    Use as an async context manager: the HTTP session opens on entry; on exit
    every polling loop is stopped before the session closes.
    """

    def __init__(
        self,
        http_client: HttpClientPort,
        registry: JobRegistryPort,
        engine: PollingEngine,
        dispatcher: VideoDispatcher,
    ) -> None:
        self.http_client = http_client
        self.registry = registry
        self.engine = engine
        self.dispatcher = dispatcher

    async def __aenter__(self) -> "Gateway":
        await self.http_client.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        try:
            await self.engine.shutdown()
        finally:
            await self.http_client.__aexit__(exc_type, exc_val, exc_tb)
        return False


def _provider_value(settings: VidgateSettings, provider: ProviderName, field: str):
    return getattr(settings, f"VIDGATE_{provider.value.upper()}_{field}")


def build_adapters(
    settings: VidgateSettings,
    http_client: HttpClientPort,
    provider_config: Optional[ProviderConfigPort] = None,
) -> Dict[ProviderName, ProviderAdapterPort]:
    """Instantiate one adapter per provider; YAML overrides win over env settings."""
    credentials = {}
    for provider in ProviderName:
        api_key = _provider_value(settings, provider, "API_KEY").get_secret_value()
        base_url = _provider_value(settings, provider, "BASE_URL")
        override = provider_config.get_provider(provider) if provider_config else None
        if override is not None:
            if override.api_key is not None:
                api_key = override.api_key.get_secret_value()
            if override.base_url is not None:
                base_url = override.base_url
        credentials[provider] = (api_key, base_url)

    timeout = settings.VIDGATE_HTTP_TIMEOUT
    return {
        ProviderName.veo: VeoAdapter(
            http_client,
            *credentials[ProviderName.veo],
            upload_url=settings.VIDGATE_VEO_UPLOAD_URL,
            file_url=settings.VIDGATE_VEO_FILE_URL,
            retry=TenacityRetryAdapter(attempts=3, wait_initial=0.5, wait_max=4.0),
            webhook_url=settings.VIDGATE_VEO_WEBHOOK_URL,
            request_timeout=timeout,
        ),
        ProviderName.runway: RunwayAdapter(
            http_client, *credentials[ProviderName.runway], request_timeout=timeout
        ),
        ProviderName.pixverse: PixVerseAdapter(
            http_client, *credentials[ProviderName.pixverse], request_timeout=timeout
        ),
        ProviderName.vidu: ViduAdapter(
            http_client, *credentials[ProviderName.vidu], request_timeout=timeout
        ),
    }


def build_gateway(
    settings: VidgateSettings = app_settings,
    http_client: Optional[HttpClientPort] = None,
    provider_config: Optional[ProviderConfigPort] = None,
    observers: Optional[List[JobStateObserver]] = None,
) -> Gateway:
    """Wire settings -> http client -> adapters -> registry/normalizer -> engine -> dispatcher."""
    if provider_config is None and settings.VIDGATE_PROVIDERS_FILE is not None:
        provider_config = ProviderConfigFileAdapter(settings.VIDGATE_PROVIDERS_FILE)

    http_client = http_client or AioHttpClientAdapter(default_timeout=settings.VIDGATE_HTTP_TIMEOUT)
    adapters = build_adapters(settings, http_client, provider_config)

    engine_config = PollingEngineConfig.from_app_settings(settings)
    if provider_config is not None:
        engine_config = engine_config.with_overrides(provider_config.polling_overrides())

    registry = InMemoryJobRegistry()
    engine = PollingEngine(
        adapters=adapters,
        registry=registry,
        normalizer=StatusNormalizer(),
        config=engine_config,
        observers=observers if observers is not None else [LoggingObserver()],
    )
    dispatcher = VideoDispatcher(adapters, registry, engine)
    return Gateway(http_client, registry, engine, dispatcher)


# ---------------- CLI -----------------
def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="vidgate",
        description="Submit one video generation job and follow it until it finishes.",
    )
    p.add_argument("provider", choices=[p.value for p in ProviderName])
    p.add_argument("prompt", nargs="?", default=None, help="Text prompt (optional for image jobs on some providers).")
    p.add_argument("--image", type=Path, default=None, help="Source image for image-to-video.")
    p.add_argument("--aspect-ratio", default=None, help="e.g. 16:9, or 1280:720 for runway.")
    p.add_argument("--duration", type=int, default=None, help="Clip length in seconds.")
    p.add_argument("--audio", action="store_true", help="Ask the provider for generated audio.")
    p.add_argument("--model", default=None, help="Provider-specific model name.")
    p.add_argument("--seed", type=int, default=None)
    p.add_argument("--timeout", type=float, default=None, help="Override the polling budget in seconds.")
    p.add_argument("--capabilities", action="store_true", help="Print the provider's capabilities and exit.")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    args = p.parse_args(argv)
    if not args.capabilities and (args.aspect_ratio is None or args.duration is None):
        p.error("--aspect-ratio and --duration are required unless --capabilities is given")
    return args


async def _run(args: argparse.Namespace, console: Console) -> int:
    if args.capabilities:
        async with build_gateway() as gateway:
            console.print(gateway.dispatcher.capabilities(args.provider))
        return 0

    extra: Dict[str, object] = {}
    if args.model:
        extra["model"] = args.model
    if args.seed is not None:
        extra["seed"] = args.seed

    image = args.image.read_bytes() if args.image else None
    request = GenerationRequest(
        prompt=args.prompt,
        image=image,
        aspect_ratio=args.aspect_ratio,
        duration_seconds=args.duration,
        generate_audio=args.audio,
        extra_options=extra,
    )

    def show_progress(result: NormalizedResult) -> None:
        pct = "?" if result.progress is None else f"{result.progress:.0%}"
        console.print(f"[cyan]{result.state}[/cyan] {pct}")

    async with build_gateway() as gateway:
        try:
            result = await gateway.dispatcher.generate(
                args.provider, request, on_progress=show_progress, timeout=args.timeout
            )
        except VideoGenerationError as exc:
            console.print(f"[red]submit failed[/red] ({exc.failure_reason}): {exc.message}")
            return 2

    if result.state == JobState.succeeded:
        console.print(f"[green]done[/green] {result.media_url}")
        return 0
    console.print(f"[red]{result.state}[/red] ({result.failure_reason}): {result.error_message}")
    return 1


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    level = "DEBUG" if args.verbose else app_settings.VIDGATE_LOG_LEVEL
    configure_logging(level)
    logger.set_level(level)
    if args.verbose:
        app_settings.print_settings(logger)

    if args.image is not None and not args.image.is_file():
        Console(stderr=True).print(f"[red]Image not found:[/red] {args.image}")
        return 2

    return asyncio.run(_run(args, Console()))


if __name__ == "__main__":
    sys.exit(main())
