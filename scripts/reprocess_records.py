from __future__ import annotations

import argparse
import json

from resumate.analysis.presenter import present
from resumate.analysis.rating import reconcile
from resumate.core.config import settings
from resumate.core.record_store import RecordStore, utc_now_iso


def reprocess(store: RecordStore, *, owner_id: str | None = None, write: bool = False) -> list[dict]:
    """Recompute ratings from stored feedback; unreadable feedback is reported and left alone."""
    results: list[dict] = []
    for row in store.iter_records(owner_id):
        report = present(row.get("feedback"))
        if report is None:
            results.append({"id": row["id"], "old": row.get("rating"), "new": None, "status": "unreadable"})
            continue
        rating = reconcile(report)
        changed = rating != row.get("rating")
        if write and changed:
            store.upsert({**row, "feedback": report.to_payload(), "rating": rating, "updated_at": utc_now_iso()})
        results.append(
            {
                "id": row["id"],
                "old": row.get("rating"),
                "new": rating,
                "status": ("updated" if write else "changed") if changed else "unchanged",
            }
        )
    return results


def main() -> None:
    parser = argparse.ArgumentParser(description="Recompute resume ratings from stored feedback.")
    parser.add_argument("--db", default=settings.records_db_path, help="Records SQLite path")
    parser.add_argument("--owner", default=None, help="Only reprocess records of this owner id")
    parser.add_argument(
        "--write",
        action="store_true",
        help="Persist recomputed ratings (default is a dry run).",
    )
    args = parser.parse_args()

    store = RecordStore(args.db)
    try:
        results = reprocess(store, owner_id=args.owner, write=args.write)
    finally:
        store.close()

    for item in results:
        print(json.dumps(item, ensure_ascii=False))
    changed = sum(1 for item in results if item["status"] in {"changed", "updated"})
    print(f"processed={len(results)} changed={changed} write={args.write}")


if __name__ == "__main__":
    main()
