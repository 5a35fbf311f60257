"""Tests for the composition root and CLI argument handling."""

import pytest

from vidgate.adapters.providers.pixverse import PixVerseAdapter
from vidgate.adapters.providers.runway import RunwayAdapter
from vidgate.adapters.providers.veo import VeoAdapter
from vidgate.adapters.providers.vidu import ViduAdapter
from vidgate.core.interfaces.http_client import HttpClientPort
from vidgate.core.models.job import JobHandle, ProviderName
from vidgate.core.models.providers_config import ProviderOverride
from vidgate.core.interfaces.provider_config import ProviderConfigPort
from vidgate.core.settings import VidgateSettings
from vidgate.main import build_adapters, build_gateway, main, parse_args


class RecordingHttpClient(HttpClientPort):
    def __init__(self):
        self.entered = False
        self.closed = False
        self.gets = []

    async def __aenter__(self):
        self.entered = True
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False

    async def get(self, url, headers=None, timeout=None):
        self.gets.append((url, headers))
        return {"status": 200, "headers": {}, "body": {"id": "t", "state": "processing"}}

    async def post(self, url, json, headers=None, timeout=None):
        return {"status": 200, "headers": {}, "body": {}}

    async def post_multipart(self, url, field_name, filename, content, content_type, headers=None, timeout=None):
        return {"status": 200, "headers": {}, "body": {}}

    async def close(self):
        self.closed = True


class StaticProviderConfig(ProviderConfigPort):
    def __init__(self, overrides):
        self._overrides = overrides

    def get_provider(self, provider):
        return self._overrides.get(provider)

    def list_providers(self):
        return list(self._overrides)

    def polling_overrides(self):
        return {p: o.polling_fields() for p, o in self._overrides.items() if o.polling_fields()}


@pytest.fixture
def settings():
    return VidgateSettings(
        _env_file=None,
        VIDGATE_PROVIDERS_FILE=None,
        VIDGATE_VIDU_API_KEY="env-key",
        VIDGATE_VIDU_BASE_URL="https://vidu.env",
    )


def test_build_adapters_creates_one_adapter_per_provider(settings):
    adapters = build_adapters(settings, RecordingHttpClient())

    assert isinstance(adapters[ProviderName.veo], VeoAdapter)
    assert isinstance(adapters[ProviderName.runway], RunwayAdapter)
    assert isinstance(adapters[ProviderName.pixverse], PixVerseAdapter)
    assert isinstance(adapters[ProviderName.vidu], ViduAdapter)


@pytest.mark.asyncio
async def test_yaml_overrides_win_over_environment(settings):
    http = RecordingHttpClient()
    config = StaticProviderConfig({
        ProviderName.vidu: ProviderOverride(api_key="yaml-key", base_url="https://vidu.yaml/"),
    })
    adapters = build_adapters(settings, http, config)

    await adapters[ProviderName.vidu].fetch_status(JobHandle(job_id="t", provider=ProviderName.vidu))

    url, headers = http.gets[0]
    assert url == "https://vidu.yaml/ent/v2/tasks/t/creations"
    assert headers["Authorization"] == "Token yaml-key"


def test_build_gateway_applies_polling_overrides(settings):
    config = StaticProviderConfig({ProviderName.vidu: ProviderOverride(poll_interval=0.5, timeout=42)})

    gateway = build_gateway(settings, http_client=RecordingHttpClient(), provider_config=config)

    policy = gateway.engine.config.policy_for(ProviderName.vidu)
    assert (policy.poll_interval, policy.poll_timeout) == (0.5, 42)
    assert gateway.engine.config.policy_for(ProviderName.runway).poll_interval == 5.0
    assert set(gateway.dispatcher.providers()) == set(ProviderName)


@pytest.mark.asyncio
async def test_gateway_context_owns_the_http_session(settings):
    http = RecordingHttpClient()

    async with build_gateway(settings, http_client=http) as gateway:
        assert http.entered
        assert gateway.dispatcher.available_durations("vidu") == [4, 5, 8]

    assert http.closed


def test_parse_args():
    args = parse_args(["vidu", "a quiet harbour", "--aspect-ratio", "16:9", "--duration", "4", "--audio"])
    assert args.provider == "vidu"
    assert args.prompt == "a quiet harbour"
    assert args.duration == 4
    assert args.audio is True
    assert args.image is None


def test_parse_args_rejects_unknown_provider():
    with pytest.raises(SystemExit):
        parse_args(["sora", "x", "--aspect-ratio", "16:9", "--duration", "4"])


def test_main_rejects_missing_image(tmp_path, monkeypatch, capsys):
    monkeypatch.setattr("vidgate.main.configure_logging", lambda level: None)
    code = main(["runway", "--image", str(tmp_path / "nope.png"), "--aspect-ratio", "1280:720", "--duration", "5"])
    assert code == 2
    assert "Image not found" in capsys.readouterr().err


def test_parse_args_capabilities_needs_no_request_options():
    args = parse_args(["veo", "--capabilities"])
    assert args.capabilities is True
    assert args.aspect_ratio is None
    assert args.duration is None


def test_parse_args_requires_request_options_without_capabilities():
    with pytest.raises(SystemExit):
        parse_args(["veo", "a lighthouse", "--aspect-ratio", "16:9"])


def test_main_prints_capabilities_without_submitting(settings, monkeypatch, capsys):
    http = RecordingHttpClient()
    monkeypatch.setattr("vidgate.main.configure_logging", lambda level: None)
    monkeypatch.setattr("vidgate.main.build_gateway", lambda: build_gateway(settings, http_client=http))

    code = main(["vidu", "--capabilities"])

    assert code == 0
    assert http.entered and http.closed
    assert http.gets == []
    assert capsys.readouterr().out
