import random
from typing import List, Sequence, Tuple

import pytest
from fastapi.testclient import TestClient

from justified_layout import PhotoInput


def make_photos(sizes: Sequence[Tuple[float, float]]) -> List[PhotoInput]:
    return [
        PhotoInput(id=f"p{i}", url=f"https://example.com/p{i}.jpg", width=w, height=h)
        for i, (w, h) in enumerate(sizes)
    ]


def random_sizes(count: int, seed: int) -> List[Tuple[int, int]]:
    rng = random.Random(seed)
    return [(rng.randint(300, 2000), rng.randint(300, 2000)) for _ in range(count)]


@pytest.fixture()
def six_landscape_photos() -> List[PhotoInput]:
    return make_photos([(600, 400)] * 6)


@pytest.fixture()
def client(monkeypatch) -> TestClient:
    import server

    # Keep the in-memory limiter out of the way unless a test lowers it
    monkeypatch.setattr(server, "RATE_LIMIT_REQUESTS", 10_000)
    server.rate_limit_store.clear()

    return TestClient(server.app)


@pytest.fixture()
def photo_payload():
    def _build(count: int, width: int = 600, height: int = 400) -> List[dict]:
        return [
            {"id": f"p{i}", "url": f"https://example.com/p{i}.jpg", "width": width, "height": height}
            for i in range(count)
        ]
    return _build
