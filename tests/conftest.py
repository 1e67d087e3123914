"""Shared test fixtures."""

import asyncio

import pytest

from clip_segmenter.models import ProviderId
from clip_segmenter.providers import ProviderRegistry, ProviderVariant


class FakeTransport:
    """Records each request and replies with a canned response (or raises)."""

    def __init__(self, response: str = "", error: Exception = None, delay_s: float = 0.0):
        self.response = response
        self.error = error
        self.delay_s = delay_s
        self.calls = []

    async def __call__(self, client, credentials, messages, options):
        self.calls.append({"messages": messages, "options": options})
        if self.delay_s:
            await asyncio.sleep(self.delay_s)
        if self.error is not None:
            raise self.error
        return self.response


def build_fake_variant(
    transport,
    provider_id: ProviderId = ProviderId.OPENAI,
    locally_hosted: bool = False,
    missing: list = None,
    build_client=None,
) -> ProviderVariant:
    return ProviderVariant(
        provider_id=provider_id,
        display_name=f"Fake {provider_id.value}",
        locally_hosted=locally_hosted,
        credentials=lambda s: s.openai,
        missing_credentials=lambda creds: list(missing or []),
        build_client=build_client or (lambda creds: object()),
        transport=transport,
    )


@pytest.fixture
def make_registry():
    """Factory: registry with one fake provider variant plus its transport."""

    def _make(response: str = "", error: Exception = None, delay_s: float = 0.0, **variant_kwargs):
        transport = FakeTransport(response, error, delay_s)
        variant = build_fake_variant(transport, **variant_kwargs)
        return ProviderRegistry({variant.provider_id: variant}), transport

    return _make


@pytest.fixture
def make_variant():
    """Factory for a fake provider variant around a given transport."""
    return build_fake_variant
