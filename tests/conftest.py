"""Shared fixtures for the receipt scanning tests."""

import asyncio

import pytest

from app.config import Settings


class FakeExtractor:
    """Stands in for the extraction service with a canned reply."""

    def __init__(
        self,
        text: str | None = None,
        error: Exception | None = None,
        delay: float = 0,
        gate: asyncio.Event | None = None,
    ):
        self.text = text
        self.error = error
        self.delay = delay
        self.gate = gate
        self.calls: list[tuple[str, str]] = []

    async def extract(self, image_b64: str, content_type: str) -> str:
        self.calls.append((image_b64, content_type))
        if self.gate is not None:
            await self.gate.wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.text


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def fake_extractor() -> FakeExtractor:
    return FakeExtractor('{"merchantName": "Marina Bay Cafe", "country": "Singapore", '
                         '"currencyCode": "SGD", "subtotal": 20, "tax": 1.8, "total": 21.8}')


@pytest.fixture
def make_extractor():
    return FakeExtractor
