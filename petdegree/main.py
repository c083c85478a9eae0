from __future__ import annotations

import argparse
import json
import sys
from datetime import date
from pathlib import Path
from typing import Any, Optional

import requests

from .ancestor_resolver import ancestors_by_generation, lookup_from_records, resolve_ancestors
from .breeding_matches import rank_breeding_matches, recommend_pair
from .lineage_registrar import (
    DEFAULT_REGISTRY_PREFIX,
    assign_registration_codes,
    diff_registration_codes,
    generation_counts,
)
from .models import AnimalRecord
from .record_store import build_index, load_records
from .record_store_api import (
    apply_registration_changes,
    build_client,
    default_api_key,
    default_api_url,
    fetch_all_records,
)
from .registrations_xlsx import upsert_registration_rows


# ---------------------------------------------------------------------------

def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Pedigree tools: ancestors, lineage registration codes and breeding compatibility.",
    )

    # record source
    parser.add_argument(
        "--records",
        metavar="PATH",
        default=None,
        help="JSON snapshot of the animal table (list or {schema_version, animals}).",
    )
    parser.add_argument(
        "--api-url",
        default=default_api_url(),
        help="Record store base URL (default: $PETDEGREE_API_URL). Used when --records is omitted.",
    )
    parser.add_argument(
        "--api-key",
        default=default_api_key(),
        help="Record store API key (default: $PETDEGREE_API_KEY).",
    )

    # ancestors
    parser.add_argument("--ancestors", metavar="ID", default=None)
    parser.add_argument(
        "--max-depth",
        type=int,
        default=None,
        help="Generation cap for --ancestors (default: unlimited).",
    )

    # registration codes
    parser.add_argument("--register", metavar="ROOT_ID", default=None)
    parser.add_argument("--lineage", default=None, help="Lineage code used in registration numbers, e.g. BOONPING.")
    parser.add_argument("--registry-prefix", default=DEFAULT_REGISTRY_PREFIX)
    parser.add_argument(
        "--apply",
        action="store_true",
        help="Write changed registration numbers back to the record store API.",
    )
    parser.add_argument(
        "--registrations-xlsx",
        metavar="PATH",
        default=None,
        help="Upsert the assigned codes into an Excel sheet.",
    )
    parser.add_argument("--registrations-sheet", default="Registrations")

    # compatibility
    parser.add_argument("--compat", nargs=2, metavar=("A_ID", "B_ID"), default=None)
    parser.add_argument("--matches", metavar="ID", default=None)
    parser.add_argument("--limit", type=int, default=10)
    parser.add_argument(
        "--any-breed",
        action="store_true",
        help="Let --matches consider partners of other breeds (default: same breed only).",
    )
    parser.add_argument(
        "--today",
        type=date.fromisoformat,
        default=None,
        help="Reference date for age scoring, YYYY-MM-DD (default: today).",
    )

    parser.add_argument("--json", action="store_true")

    return parser.parse_args(argv)


# ---------------------------------------------------------------------------

def _load_records(args: argparse.Namespace) -> list[AnimalRecord]:
    if args.records:
        records = load_records(Path(args.records))
        print(f"[main] Loaded {len(records)} animals from {args.records}")
        return records

    if args.api_url:
        session = build_client(args.api_key)
        return fetch_all_records(session, args.api_url)

    raise SystemExit("[main] ERROR: a record source is required (--records or --api-url)")


def _require(index: dict[str, AnimalRecord], animal_id: str) -> AnimalRecord:
    rec = index.get(animal_id)
    if rec is None:
        raise SystemExit(f"[main] ERROR: animal not found: {animal_id!r}")
    return rec


def main(argv: Optional[list[str]] = None) -> None:
    args = parse_args(argv)

    if not (args.ancestors or args.register or args.compat or args.matches):
        raise SystemExit("[main] ERROR: nothing to do (use --ancestors, --register, --compat or --matches)")
    if args.register and not args.lineage:
        raise SystemExit("[main] ERROR: --register requires --lineage")
    if args.apply and not args.api_url:
        raise SystemExit("[main] ERROR: --apply requires --api-url")

    # Keep stdout JSON-clean for --json pipelines
    real_stdout = sys.stdout
    if args.json:
        sys.stdout = sys.stderr

    def _log(*a: Any) -> None:
        print(*a, file=sys.stderr if args.json else sys.stdout)

    result: dict[str, Any] = {}

    try:
        try:
            records = _load_records(args)
        except (OSError, ValueError, RuntimeError, requests.RequestException) as e:
            _log("[main] ERROR loading records:", e)
            return

        index = build_index(records)
        lookup = lookup_from_records(records)
        today = args.today or date.today()

        # ---- Ancestors ----
        if args.ancestors:
            root = _require(index, args.ancestors)
            nodes = resolve_ancestors(root.id, lookup, max_depth=args.max_depth)
            result["ancestors"] = [n.to_dict() for n in nodes]

            _log(f"\n[main] Ancestors of {root.label()}")
            _log("-" * 60)
            for gen, group in ancestors_by_generation(nodes).items():
                _log(f"  Generation {gen}: {len(group)} ancestors")
                for n in group:
                    _log(f"    {n.role}: {n.name or '?'} ({n.id})")

        # ---- Registration codes ----
        if args.register:
            root = _require(index, args.register)
            assignments = assign_registration_codes(
                root.id,
                records,
                args.lineage,
                registry_prefix=args.registry_prefix,
            )
            changes = diff_registration_codes(assignments, records)

            result["registrations"] = [
                a.to_dict()
                for a in sorted(assignments.values(), key=lambda a: (a.generation, a.sequence_in_generation))
            ]
            result["registration_changes"] = [c.to_dict() for c in changes]

            _log(f"\n[main] Registration codes from root {root.label()}")
            _log("-" * 60)
            for gen, count in generation_counts(assignments).items():
                _log(f"  Generation {gen}: {count} animals")
            _log(f"  Changes vs stored codes: {len(changes)}")

            if args.registrations_xlsx:
                written = upsert_registration_rows(
                    xlsx_path=Path(args.registrations_xlsx),
                    sheet_name=args.registrations_sheet,
                    assignments=assignments,
                    records=records,
                )
                _log(f"[main] {written} rows -> {args.registrations_xlsx} [{args.registrations_sheet}]")

            if args.apply:
                try:
                    apply_registration_changes(build_client(args.api_key), args.api_url, changes)
                except requests.RequestException as e:
                    _log("[main] ERROR applying registration changes:", e)
                    return

        # ---- Compatibility ----
        if args.compat:
            a = _require(index, args.compat[0])
            b = _require(index, args.compat[1])
            pair = recommend_pair(a, b, today=today, parent_lookup=lookup)
            verdict = pair.verdict
            estimate = pair.inbreeding
            result["compatibility"] = {
                **verdict.to_dict(),
                **pair.to_dict(),
                "inbreeding": estimate.to_dict() if estimate else None,
            }

            _log(f"\n[main] Compatibility {a.label()} x {b.label()}")
            _log("-" * 60)
            _log(f"  Score: {verdict.score} ({verdict.label})")
            for k, v in verdict.breakdown.to_dict().items():
                _log(f"  {k}: {v}")
            _log(f"  Breeding: {verdict.breeding.type} / {verdict.breeding.level}")
            if estimate:
                _log(f"  COI: {estimate.coi:.4f} {estimate.relationship or ''}".rstrip())
            for w in verdict.breeding.warnings:
                _log(f"  WARNING: {w}")
            _log(f"  Advice: {verdict.advice}")
            _log(f"  Compatible: {'yes' if pair.compatible else 'no'}")
            _log(f"  {pair.recommendation}")

        # ---- Match ranking ----
        if args.matches:
            animal = _require(index, args.matches)
            report = rank_breeding_matches(
                animal,
                records,
                today=today,
                limit=args.limit,
                parent_lookup=lookup,
                same_breed_only=not args.any_breed,
            )
            result["matches"] = report.to_dict()

            _log(f"\n[main] Top {len(report.matches)} matches for {animal.label()}")
            _log("-" * 60)
            for m in report.matches:
                _log(f"  {m.candidate.label()}: score={m.verdict.score} ({m.verdict.label}) coi={m.coi:.4f}")
            for line in report.summary.splitlines():
                _log(f"  {line}")

        if args.json:
            # Restore real stdout JUST for JSON output
            sys.stdout = real_stdout
            print(json.dumps(result, ensure_ascii=False, indent=2))
            sys.stdout = sys.stderr

        _log("\n[main] Done.")

    finally:
        sys.stdout = real_stdout


if __name__ == "__main__":
    main()
