"""Throughput benchmark for the Bloom filter.

Generates pseudo-random 200-byte payloads, sizes a filter for a 0.1%
false-positive rate, and times:

1. add() for every existing payload
2. contains() on existing payloads
3. contains_all() on existing payloads
4. contains() on payloads that were never added
5. contains_all() on payloads that were never added (one at a time)

Only the public filter API is used. Run with:

    python -m benchmark.run_benchmark
"""
from __future__ import annotations

import random
import time
from typing import Callable, Optional

from bf_core.bloom_filter import BloomFilter


ELEMENT_COUNT = 50_000
PAYLOAD_BYTES = 200
TARGET_RATE = 0.001
SEED = 2009


def generate_payloads(count: int, rng: random.Random) -> list[bytes]:
    """Return ``count`` random payloads of ``PAYLOAD_BYTES`` bytes."""
    return [rng.randbytes(PAYLOAD_BYTES) for _ in range(count)]


def print_stat(label: str, elapsed: float, count: int) -> None:
    if elapsed <= 0:
        ops_per_sec = float("inf")
    else:
        ops_per_sec = count / elapsed
    print(f"  {label:<28}{elapsed:>10.4f} s {ops_per_sec:>14,.0f} elements/s")


def timed(fn: Callable[[], object]) -> float:
    start_time = time.perf_counter()
    fn()
    return time.perf_counter() - start_time


def run_all(element_count: int = ELEMENT_COUNT, seed: Optional[int] = SEED) -> dict:
    """Run the benchmark and return the measured timings."""
    rng = random.Random(seed)
    existing = generate_payloads(element_count, rng)
    non_existing = generate_payloads(element_count, rng)

    bloom = BloomFilter.with_false_positive_rate(TARGET_RATE, element_count)

    print("=" * 60)
    print(f"Testing {element_count} elements")
    print(f"  Filter size (bits): {bloom.size}")
    print(f"  k is {bloom.num_hashes}")
    print("=" * 60)

    add_time = timed(lambda: [bloom.add(p) for p in existing])
    print_stat("add():", add_time, element_count)

    contains_time = timed(lambda: [bloom.contains(p) for p in existing])
    print_stat("contains(), existing:", contains_time, element_count)

    contains_all_time = timed(lambda: bloom.contains_all(existing))
    print_stat("containsAll(), existing:", contains_all_time, element_count)

    hits: list[bool] = []
    ncontains_time = timed(lambda: hits.extend(bloom.contains(p) for p in non_existing))
    print_stat("contains(), nonexisting:", ncontains_time, element_count)

    ncontains_all_time = timed(lambda: [bloom.contains_all([p]) for p in non_existing])
    print_stat("containsAll(), nonexisting:", ncontains_all_time, element_count)

    observed = sum(hits) / element_count
    print()
    print(f"  Expected FPR: {bloom.expected_false_positive_probability():.6f}")
    print(f"  Observed FPR: {observed:.6f}")
    print("=" * 60)

    return {
        "element_count": element_count,
        "add_time": add_time,
        "contains_time": contains_time,
        "contains_all_time": contains_all_time,
        "ncontains_time": ncontains_time,
        "ncontains_all_time": ncontains_all_time,
        "observed_fpr": observed,
    }


if __name__ == "__main__":
    run_all()
