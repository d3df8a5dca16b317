#!/usr/bin/env python3
"""
Performance Benchmark for OrderlyID

Checks the throughput characteristics expected of the generation and codec
layer:

- Generation: >100K identifiers/sec on one generator
- Decoding: >100K identifiers/sec
- Concurrency: 8 threads sharing one generator issue no duplicates

Run:
    python scripts/performance_benchmark.py
"""

import threading
import time

from orderlyid import GeneratorConfig, OrderlyIdGenerator, decode


def benchmark_generation() -> dict:
    """Benchmark single-threaded generation rate"""
    print("\n=== Benchmark: Generation Rate ===")

    generator = OrderlyIdGenerator(
        GeneratorConfig(tenant=42, shard=7, type_tag="order", clock_regression_policy="clamp")
    )

    num_ids = 100_000
    start_time = time.perf_counter()
    for _ in range(num_ids):
        generator.generate()
    elapsed = time.perf_counter() - start_time

    ids_per_sec = num_ids / elapsed if elapsed > 0 else 0

    print(f"  Identifiers issued: {num_ids}")
    print(f"  Time elapsed: {elapsed:.2f}s")
    print(f"  IDs/sec: {ids_per_sec:,.0f}")
    print("  Target: >100,000 IDs/sec")
    print(f"  Status: {'✓ PASS' if ids_per_sec > 100_000 else '✗ FAIL'}")

    return {
        "test": "generation",
        "ids": num_ids,
        "elapsed_sec": elapsed,
        "ids_per_sec": ids_per_sec,
        "target": 100_000,
        "pass": ids_per_sec > 100_000,
    }


def benchmark_decode() -> dict:
    """Benchmark decode + checksum verification rate"""
    print("\n=== Benchmark: Decode Rate ===")

    generator = OrderlyIdGenerator(
        GeneratorConfig(type_tag="payment", checksum_enabled=True, clock_regression_policy="fail")
    )
    texts = [orderly_id.text for orderly_id in generator.generate_many(100_000)]

    start_time = time.perf_counter()
    for text in texts:
        decode(text, require_checksum=True)
    elapsed = time.perf_counter() - start_time

    ids_per_sec = len(texts) / elapsed if elapsed > 0 else 0

    print(f"  Identifiers decoded: {len(texts)}")
    print(f"  Time elapsed: {elapsed:.2f}s")
    print(f"  IDs/sec: {ids_per_sec:,.0f}")
    print("  Target: >100,000 IDs/sec")
    print(f"  Status: {'✓ PASS' if ids_per_sec > 100_000 else '✗ FAIL'}")

    return {
        "test": "decode",
        "ids": len(texts),
        "elapsed_sec": elapsed,
        "ids_per_sec": ids_per_sec,
        "target": 100_000,
        "pass": ids_per_sec > 100_000,
    }


def benchmark_concurrent_uniqueness() -> dict:
    """Share one generator between threads and check for duplicates"""
    print("\n=== Benchmark: Concurrent Uniqueness ===")

    generator = OrderlyIdGenerator(GeneratorConfig(clock_regression_policy="fail"))
    num_threads = 8
    per_thread = 20_000
    results: list[list[tuple[int, int]]] = [[] for _ in range(num_threads)]

    def worker(index: int) -> None:
        results[index] = [
            (orderly_id.fields.timestamp, orderly_id.fields.sequence)
            for orderly_id in (generator.generate() for _ in range(per_thread))
        ]

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(num_threads)]
    start_time = time.perf_counter()
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    elapsed = time.perf_counter() - start_time

    all_ids = [slot for chunk in results for slot in chunk]
    slots = set(all_ids)
    unique = len(slots) == len(all_ids)

    print(f"  Threads: {num_threads} x {per_thread}")
    print(f"  Time elapsed: {elapsed:.2f}s")
    print(f"  Distinct (timestamp, sequence) slots: {len(slots)} / {len(all_ids)}")
    print(f"  Status: {'✓ PASS' if unique else '✗ FAIL'}")

    return {
        "test": "concurrent_uniqueness",
        "ids": len(all_ids),
        "elapsed_sec": elapsed,
        "pass": unique,
    }


def main() -> None:
    print("=" * 70)
    print("  OrderlyID Performance Benchmark")
    print("=" * 70)

    results = [
        benchmark_generation(),
        benchmark_decode(),
        benchmark_concurrent_uniqueness(),
    ]

    print("\n" + "=" * 70)
    print("  Summary")
    print("=" * 70)
    for result in results:
        print(f"  {result['test']}: {'✓ PASS' if result['pass'] else '✗ FAIL'}")


if __name__ == "__main__":
    main()
