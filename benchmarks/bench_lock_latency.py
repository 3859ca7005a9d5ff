"""Benchmark: lock/unlock round-trip latency per strategy — mean/p99.

Measures an uncontended ``lock()`` followed by ``unlock()`` on a temporary
folder file for every built-in strategy.
"""
from __future__ import annotations

import json
import sys
import tempfile
import time
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from mailbox_locker.locker import create_locker

_WARMUP: int = 100
_ITERATIONS: int = 2_000
_METHODS: tuple[str, ...] = ("POSIX", "DOTLOCK", "FLOCK", "MULTI", "NONE")


def bench_lock_roundtrip(method: str, folder: Path) -> dict[str, object]:
    """Benchmark one strategy's lock()+unlock() latency.

    Returns
    -------
    dict with keys: operation, iterations, total_seconds, ops_per_second,
    avg_latency_ms, p99_latency_ms.
    """
    locker = create_locker(method=method, file=str(folder), timeout=1)

    for _ in range(_WARMUP):
        locker.lock()
        locker.unlock()

    latencies_ms: list[float] = []
    for _ in range(_ITERATIONS):
        t0 = time.perf_counter()
        locker.lock()
        locker.unlock()
        latencies_ms.append((time.perf_counter() - t0) * 1000)

    sorted_lats = sorted(latencies_ms)
    n = len(sorted_lats)
    total = sum(latencies_ms) / 1000

    result: dict[str, object] = {
        "operation": f"lock_roundtrip_{method.lower()}",
        "iterations": _ITERATIONS,
        "total_seconds": round(total, 4),
        "ops_per_second": round(_ITERATIONS / total, 1),
        "avg_latency_ms": round(sum(latencies_ms) / n, 4),
        "p99_latency_ms": round(sorted_lats[min(int(n * 0.99), n - 1)], 4),
    }
    print(
        f"[bench_lock_latency] {result['operation']}: "
        f"p99={result['p99_latency_ms']:.4f}ms  "
        f"mean={result['avg_latency_ms']:.4f}ms"
    )
    return result


def run_benchmark() -> list[dict[str, object]]:
    """Entry point returning one result dict per strategy."""
    with tempfile.TemporaryDirectory() as tmp:
        folder = Path(tmp) / "inbox"
        folder.write_text("")
        return [bench_lock_roundtrip(method, folder) for method in _METHODS]


if __name__ == "__main__":
    results = run_benchmark()
    results_dir = Path(__file__).parent / "results"
    results_dir.mkdir(exist_ok=True)
    output_path = results_dir / "lock_latency_baseline.json"
    with open(output_path, "w", encoding="utf-8") as fh:
        json.dump(results, fh, indent=2)
    print(f"Results saved to {output_path}")
