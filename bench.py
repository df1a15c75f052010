import argparse
import asyncio
import os
import random
import sys
import time
from dataclasses import dataclass
from statistics import mean, median
from typing import Dict, List, Optional

import httpx

from justified_layout import LayoutOptions, PhotoInput, compute_justified_layout


DEFAULT_URL = "http://localhost:8000/api/layout/justified"

# Common camera/phone sizes, landscape and portrait
_SIZES = [(6000, 4000), (4000, 6000), (4032, 3024), (3024, 4032), (1920, 1080), (1080, 1920), (3000, 3000)]


@dataclass
class RequestResult:
    ok: bool
    status_code: int
    latency_s: float
    row_count: Optional[int]
    error: Optional[str]


@dataclass
class LocalResult:
    photo_count: int
    rows: int
    best_s: float


def random_photos(count: int, seed: Optional[int] = None) -> List[Dict]:
    rng = random.Random(seed)
    photos = []
    for i in range(count):
        width, height = rng.choice(_SIZES)
        photos.append({"id": f"p{i}", "url": f"https://example.com/p{i}.jpg", "width": width, "height": height})
    return photos


async def send_request(client: httpx.AsyncClient, url: str, payload: dict) -> RequestResult:
    start = time.perf_counter()
    try:
        resp = await client.post(url, json=payload, timeout=None)
        latency = time.perf_counter() - start
        row_count: Optional[int] = None
        if resp.is_success:
            row_count = resp.json().get("row_count")
        return RequestResult(ok=resp.is_success, status_code=resp.status_code, latency_s=latency, row_count=row_count, error=None if resp.is_success else resp.text)
    except httpx.HTTPError as e:
        latency = time.perf_counter() - start
        return RequestResult(ok=False, status_code=0, latency_s=latency, row_count=None, error=str(e))


async def worker(client: httpx.AsyncClient, url: str, payload: dict, jobs: asyncio.Queue, results: asyncio.Queue):
    while True:
        try:
            _ = await jobs.get()
        except asyncio.CancelledError:
            break
        res = await send_request(client, url, payload)
        await results.put(res)
        jobs.task_done()


def percentile(values: List[float], p: float) -> float:
    if not values:
        return 0.0
    values_sorted = sorted(values)
    k = (len(values_sorted) - 1) * (p / 100.0)
    f = int(k)
    c = min(f + 1, len(values_sorted) - 1)
    if f == c:
        return values_sorted[int(k)]
    d0 = values_sorted[f] * (c - k)
    d1 = values_sorted[c] * (k - f)
    return d0 + d1


def print_summary(latencies: List[float], results: List[RequestResult], wall_s: float):
    total = len(results)
    ok = sum(1 for r in results if r.ok)
    errors = total - ok
    print("=== Benchmark Summary ===")
    print(f"Requests: total={total}, success={ok}, errors={errors}")
    if wall_s > 0:
        print(f"Throughput: {total / wall_s:.2f} req/s")
    if latencies:
        print("Latency (s):")
        print(f"  mean={mean(latencies):.4f}  median={median(latencies):.4f}  p90={percentile(latencies,90):.4f}  p95={percentile(latencies,95):.4f}  p99={percentile(latencies,99):.4f}")


async def run_benchmark(
    url: str,
    total_requests: int,
    concurrency: int,
    photos_per_request: int,
    container_width: float,
    options: Dict,
    seed: Optional[int],
):
    payload = {
        "photos": random_photos(photos_per_request, seed),
        "container_width": container_width,
        "options": options,
    }

    limits = httpx.Limits(max_connections=concurrency, max_keepalive_connections=concurrency)
    async with httpx.AsyncClient(limits=limits, timeout=httpx.Timeout(None)) as client:
        jobs_q: asyncio.Queue = asyncio.Queue()
        results_q: asyncio.Queue = asyncio.Queue()
        for _ in range(total_requests):
            jobs_q.put_nowait(1)

        workers = [asyncio.create_task(worker(client, url, payload, jobs_q, results_q)) for _ in range(concurrency)]

        start_wall = time.perf_counter()
        await jobs_q.join()
        wall_elapsed = time.perf_counter() - start_wall

        for w in workers:
            w.cancel()
        await asyncio.gather(*workers, return_exceptions=True)

        results: List[RequestResult] = []
        while not results_q.empty():
            results.append(results_q.get_nowait())

    latencies = [r.latency_s for r in results]
    print_summary(latencies, results, wall_elapsed)


def run_local(sizes: List[int], container_width: float, options: LayoutOptions, repeat: int = 3, seed: Optional[int] = None) -> List[LocalResult]:
    """Time the engine in-process; per-photo cost should stay flat as galleries grow."""
    out: List[LocalResult] = []
    for count in sizes:
        photos = [PhotoInput(**p) for p in random_photos(count, seed)]
        best = float("inf")
        rows = []
        for _ in range(max(1, repeat)):
            start = time.perf_counter()
            rows = compute_justified_layout(photos, container_width, options)
            best = min(best, time.perf_counter() - start)
        out.append(LocalResult(photo_count=count, rows=len(rows), best_s=best))
    return out


def print_local(results: List[LocalResult]):
    print("=== Local Engine Timing ===")
    for r in results:
        per_photo_us = (r.best_s / r.photo_count) * 1e6 if r.photo_count else 0.0
        print(f"  photos={r.photo_count:>6}  rows={r.rows:>5}  best={r.best_s * 1000:.2f}ms  per_photo={per_photo_us:.1f}us")


def parse_args(argv: List[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Benchmark for the justified layout engine and API")
    p.add_argument("--local", action="store_true", help="Time the engine in-process instead of calling the API")
    p.add_argument("--sizes", type=int, nargs="+", default=[100, 500, 1000, 5000], help="Gallery sizes for --local")
    p.add_argument("--repeat", type=int, default=3, help="Runs per size for --local (best is reported)")
    p.add_argument("--url", default=os.environ.get("BENCH_URL", DEFAULT_URL), help="Layout endpoint URL")
    p.add_argument("--requests", type=int, default=50, help="Total number of requests")
    p.add_argument("--concurrency", type=int, default=5, help="Concurrent workers")
    p.add_argument("--photos-per-request", type=int, default=200, help="Number of photos per request")
    p.add_argument("--container-width", type=float, default=1200.0)
    p.add_argument("--min-photos-per-row", type=int, default=2)
    p.add_argument("--max-photos-per-row", type=int, default=8)
    p.add_argument("--target-row-height", type=float, default=240.0)
    p.add_argument("--seed", type=int, default=None)
    return p.parse_args(argv)


def main(argv: List[str]) -> int:
    args = parse_args(argv)
    if args.photos_per_request < 1:
        print("--photos-per-request must be >= 1", file=sys.stderr)
        return 2

    options = LayoutOptions(
        min_photos_per_row=args.min_photos_per_row,
        max_photos_per_row=args.max_photos_per_row,
        target_row_height=args.target_row_height,
    )

    if args.local:
        print_local(run_local(args.sizes, args.container_width, options, args.repeat, args.seed))
        return 0

    try:
        asyncio.run(
            run_benchmark(
                url=args.url,
                total_requests=args.requests,
                concurrency=args.concurrency,
                photos_per_request=args.photos_per_request,
                container_width=args.container_width,
                options={
                    "min_photos_per_row": options.min_photos_per_row,
                    "max_photos_per_row": options.max_photos_per_row,
                    "target_row_height": options.target_row_height,
                },
                seed=args.seed,
            )
        )
        return 0
    except httpx.HTTPError as e:
        print(str(e), file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
