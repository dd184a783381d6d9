import pytest
from fastapi.testclient import TestClient

from humanivio.core.config import Settings
from humanivio.main import create_app


class FakeRewriter:
    def __init__(self, result: str | None = "A freshly rewritten sentence.", error: Exception | None = None) -> None:
        self.result = result
        self.error = error
        self.calls: list[str] = []

    async def rewrite(self, text: str) -> str | None:
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        return self.result


def make_settings(**overrides) -> Settings:
    values = {"METRICS_ENABLED": False, "OPENAI_API_KEY": "", "DAILY_REQUEST_LIMIT": 1000}
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def fake_rewriter() -> FakeRewriter:
    return FakeRewriter()


@pytest.fixture
def client(fake_rewriter) -> TestClient:
    app = create_app(make_settings(), rewrite_service=fake_rewriter)
    return TestClient(app)
