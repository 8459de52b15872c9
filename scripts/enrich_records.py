"""Enrich a batch of catalog records without the HTTP server.

Input is a JSON file holding a list of objects (or an object keyed by record
id). Each record runs as an independent pipeline; a semaphore bounds how many
run at once.

Usage:
    python scripts/enrich_records.py records.json [--scope title] [--concurrency 4] [--output out.json]
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from feedenrich.config.settings import Settings
from feedenrich.fields.aliases import extract_field
from feedenrich.generation.providers import create_oracle
from feedenrich.models.domain import PipelineResult, Record
from feedenrich.observability.logger import setup_logging
from feedenrich.pipeline.enrichment_pipeline import EnrichmentPipeline, build_pipeline
from feedenrich.pipeline.scopes import OptimizationScope
from feedenrich.storage.sqlite_run_store import SQLiteRunStore


def load_records(path: Path) -> list[Record]:
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        return [Record.from_fields(str(rid), fields) for rid, fields in data.items()]
    records = []
    for i, fields in enumerate(data):
        record_id = extract_field(fields, "id") or f"record-{i + 1}"
        records.append(Record.from_fields(record_id, fields))
    return records


async def enrich_one(
    pipeline: EnrichmentPipeline,
    record: Record,
    scope: OptimizationScope,
    semaphore: asyncio.Semaphore,
) -> PipelineResult:
    async with semaphore:
        return await pipeline.run(record, scope)


def print_result(result: PipelineResult) -> None:
    s = result.summary
    line = (
        f"  [{result.status.value:>9}] {result.record_id:<20} "
        f"accepted={s.proposals_accepted:<3} rejected={s.proposals_rejected:<3} "
        f"review={s.human_review_needed:<3} score={s.score_before:.2f}->{s.score_after:.2f} "
        f"{s.duration_ms:>7.0f}ms"
    )
    print(line)
    if result.error:
        print(f"         error at {result.error.stage}: {result.error.message}")


async def main(input_path: Path, scope: OptimizationScope, concurrency: int, output: Path | None) -> None:
    settings = Settings()
    setup_logging(settings.log_level, settings.json_logs)

    Path(settings.sqlite_run_db_path).parent.mkdir(parents=True, exist_ok=True)
    run_store = SQLiteRunStore(settings.sqlite_run_db_path)
    await run_store.initialize()

    pipeline = build_pipeline(settings, create_oracle(settings), run_store=run_store)
    records = load_records(input_path)
    print(f"Enriching {len(records)} records (scope={scope.value}, concurrency={concurrency})")

    semaphore = asyncio.Semaphore(concurrency)
    results = await asyncio.gather(
        *(enrich_one(pipeline, record, scope, semaphore) for record in records)
    )

    for result in results:
        print_result(result)

    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        payload = [
            {**result.to_dict(), "current": record.current}
            for record, result in zip(records, results)
        ]
        with open(output, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, ensure_ascii=False)
        print(f"\nResults saved to {output}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Enrich catalog records")
    parser.add_argument("input", type=Path, help="JSON file of records")
    parser.add_argument(
        "--scope",
        type=OptimizationScope,
        choices=list(OptimizationScope),
        default=OptimizationScope.ALL,
    )
    parser.add_argument("--concurrency", type=int, default=4)
    parser.add_argument("--output", type=Path, default=None)
    args = parser.parse_args()
    asyncio.run(main(args.input, args.scope, args.concurrency, args.output))
