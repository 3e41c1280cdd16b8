"""Benchmark the prefix trie against a linear scan over the vocabulary."""

import gc
import json
import random
import string
import time
import tracemalloc
from pathlib import Path
from typing import Callable, Optional

import matplotlib.pyplot as plt
import psutil

from src.custom_data_structures.Trie.Trie import PrefixTrie

VOCABULARY_SIZES = [100, 1000, 10000, 100000]
QUERIES_PER_BENCHMARK = 1000
RESULTS_DIR = Path(__file__).parent / "results"
SEED = 1234


def generate_vocabulary(size: int, rng: random.Random) -> list[str]:
    """Generate `size` path-like strings sharing prefixes.

    Args:
        size (int): Number of strings to generate.
        rng (random.Random): The random generator.

    Returns:
        list[str]: The vocabulary.

    """
    segments = [
        "".join(rng.choices(string.ascii_lowercase, k=4)) for _ in range(50)
    ]
    vocabulary = set()
    while len(vocabulary) < size:
        depth = rng.randint(1, 5)
        vocabulary.add("/" + "/".join(rng.choices(segments, k=depth)))
    return sorted(vocabulary)


def linear_longest_prefix(vocabulary: list[str], query: str) -> Optional[str]:
    """Find the longest vocabulary entry that is a prefix of `query`."""
    best: Optional[str] = None
    for entry in vocabulary:
        if not query.startswith(entry):
            continue
        if best is None or len(entry) > len(best):
            best = entry
    return best


def linear_completions(vocabulary: list[str], query: str) -> list[str]:
    """Find every vocabulary entry starting with `query`."""
    return [entry for entry in vocabulary if entry.startswith(query)]


def time_queries(func: Callable[[str], object], queries: list[str]) -> float:
    """Return the average time per query in microseconds."""
    start = time.perf_counter()
    for query in queries:
        func(query)
    return (time.perf_counter() - start) / len(queries) * 1_000_000


def benchmark_size(size: int, rng: random.Random) -> dict[str, float]:
    """Run every measurement for one vocabulary size.

    Args:
        size (int): The vocabulary size.
        rng (random.Random): The random generator.

    Returns:
        dict[str, float]: The measured metrics.

    """
    vocabulary = generate_vocabulary(size, rng)
    queries = [
        rng.choice(vocabulary) + rng.choice(["", "/x", "/users/7", "?q=1"])
        for _ in range(QUERIES_PER_BENCHMARK)
    ]
    partial_queries = [
        query[: rng.randint(1, len(query))] for query in queries
    ]

    process = psutil.Process()
    rss_before = process.memory_info().rss

    tracemalloc.start()
    start = time.perf_counter()
    trie = PrefixTrie.from_mapping(dict.fromkeys(vocabulary))
    build_ms = (time.perf_counter() - start) * 1000
    _, peak_memory = tracemalloc.get_traced_memory()
    tracemalloc.stop()

    rss_after = process.memory_info().rss

    results = {
        "build_time_ms": build_ms,
        "trie_peak_memory_kb": peak_memory / 1024,
        "rss_growth_kb": max(rss_after - rss_before, 0) / 1024,
        "trie_longest_prefix_us": time_queries(
            trie.longest_prefix_match,
            queries,
        ),
        "linear_longest_prefix_us": time_queries(
            lambda q: linear_longest_prefix(vocabulary, q),
            queries,
        ),
        "trie_completions_us": time_queries(
            trie.match_completions,
            partial_queries,
        ),
        "linear_completions_us": time_queries(
            lambda q: linear_completions(vocabulary, q),
            partial_queries,
        ),
    }

    del trie
    gc.collect()
    return results


def plot_results(results: dict[int, dict[str, float]]) -> Path:
    """Plot query times per vocabulary size and save the figure."""
    sizes = list(results)
    x = range(len(sizes))
    width = 0.2
    series = [
        ("trie_longest_prefix_us", "Trie longest prefix"),
        ("linear_longest_prefix_us", "Linear longest prefix"),
        ("trie_completions_us", "Trie completions"),
        ("linear_completions_us", "Linear completions"),
    ]

    try:
        plt.figure(figsize=(10, 5))
        for i, (key, label) in enumerate(series):
            plt.bar(
                [pos + i * width for pos in x],
                [results[size][key] for size in sizes],
                width=width,
                label=label,
            )
        plt.xticks([pos + 1.5 * width for pos in x], [str(s) for s in sizes])
        plt.yscale("log")
        plt.xlabel("Vocabulary size")
        plt.ylabel("Time per query (us)")
        plt.title("Prefix lookup time per query")
        plt.legend()
        plt.tight_layout()

        graph_path = RESULTS_DIR / "benchmark_prefix_lookup.png"
        plt.savefig(graph_path)
        return graph_path
    finally:
        plt.close("all")


def main() -> None:
    """Main function."""
    RESULTS_DIR.mkdir(parents=True, exist_ok=True)
    rng = random.Random(SEED)

    results: dict[int, dict[str, float]] = {}
    for size in VOCABULARY_SIZES:
        print(f"\n--- Benchmarking vocabulary of {size} entries ---")
        results[size] = benchmark_size(size, rng)
        for metric, value in results[size].items():
            print(f"{metric}: {value:.2f}")

    results_json_path = RESULTS_DIR / "results.json"
    with results_json_path.open("w", encoding="utf-8") as f:
        json.dump(results, f, indent=4)

    graph_path = plot_results(results)
    print(f"\nResults written to {results_json_path} and {graph_path}")


if __name__ == "__main__":
    main()
