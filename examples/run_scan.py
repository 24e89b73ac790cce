#!/usr/bin/env python3
"""
Example usage of the scan orchestrator for LLM Mention Scanner.

Loads examples/scanner.config.yaml, asks every configured provider the
topic concurrently and prints what each one said about the brand.

Usage:
    export OPENAI_API_KEY="sk-..."
    export PERPLEXITY_API_KEY="pplx-..."
    export GEMINI_API_KEY="AIza..."

    python examples/run_scan.py HubSpot "What are the best CRM tools for startups?"

Note:
    Every run makes real API calls (two per provider when no sources are cited).
"""

import asyncio
import sys
from pathlib import Path

from llm_mention_scanner.config.loader import load_config
from llm_mention_scanner.exceptions import MentionScannerError
from llm_mention_scanner.llm_runner.runner import ScanRequest, scan_with_config
from llm_mention_scanner.utils.logging import setup_logging

CONFIG_PATH = Path(__file__).parent / "scanner.config.yaml"


async def main(brand_name: str, topic: str) -> int:
    setup_logging(verbose=False)

    try:
        config = load_config(CONFIG_PATH)
    except MentionScannerError as e:
        print(f"✗ Configuration error: {e}")
        return 1

    request = ScanRequest(
        requester_id="example",
        brand_name=brand_name,
        topic=topic,
    )

    try:
        batch = await scan_with_config(request, config)
    except MentionScannerError as e:
        print(f"✗ Scan failed: {e}")
        return 1

    print("=" * 80)
    print(f"Scan {batch.scan_id}: {brand_name} / {batch.topic}")
    print("=" * 80)

    for result in batch.results:
        marker = "✓" if result.brand_mentioned else "✗"
        print(
            f"{marker} {result.provider_name:<12} position={result.position} "
            f"confidence={result.confidence:.2f} ({result.duration_ms} ms)"
        )
        if result.context_snippet:
            print(f"    \"{result.context_snippet}\"")
        for source in result.sources:
            print(f"    - {source.title}: {source.url}")

    print(f"\nAverage position: {batch.aggregate.avg_position}")
    print(f"Per provider: {batch.aggregate.per_provider_position}")
    return 0


if __name__ == "__main__":
    if len(sys.argv) != 3:
        print(__doc__)
        sys.exit(2)

    sys.exit(asyncio.run(main(sys.argv[1], sys.argv[2])))
