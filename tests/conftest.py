import sys
import time
from pathlib import Path

import pytest


ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = ROOT / "src"

if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))


TEST_ENDPOINT = "https://code-assist.test"
TEST_REFRESH_URL = "https://oauth.test/token"


class FakeClock:
    """Controllable replacement for time.time."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def build_credential(now: float, expires_in: float, access_token: str = "ya29.cached-token") -> dict:
    return {
        "access_token": access_token,
        "refresh_token": "1//refresh-token",
        "token_type": "Bearer",
        "scope": "https://www.googleapis.com/auth/cloud-platform",
        "expiry_date": int((now + expires_in) * 1000),
    }


def sse_body(*objects: dict) -> bytes:
    import json

    return "".join(f"data: {json.dumps(obj)}\n\n" for obj in objects).encode("utf-8")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fresh_credential(clock: FakeClock) -> dict:
    """Credential with an hour of life left."""
    return build_credential(clock.now, 3600)


@pytest.fixture
def expiring_credential(clock: FakeClock) -> dict:
    """Credential inside the 5 minute refresh buffer but not yet expired."""
    return build_credential(clock.now, 120)


@pytest.fixture
def expired_credential(clock: FakeClock) -> dict:
    return build_credential(clock.now, -60)
