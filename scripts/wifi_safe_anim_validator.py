#!/usr/bin/env python3
"""
Check that every modified .nuanmb in a folder is wifi-safe against vanilla.

Usage:
    python scripts/wifi_safe_anim_validator.py -r vanilla_motion -m modded_motion

Prints one line per problem followed by the totals, and exits with status 1
when at least one anim is unsafe so it can gate a CI job.
"""

from __future__ import annotations

import argparse
import sys
import time
from dataclasses import dataclass, field
from pathlib import Path

SCRIPT_DIR = Path(__file__).resolve().parent
if str(SCRIPT_DIR) not in sys.path:
    sys.path.insert(0, str(SCRIPT_DIR))

from anim_pairing import AnimPair, PairResult, pair_anims, run_pairs
from bone_diff import DiffRecord, Severity, diff
from hitbox_rules import HitboxRules, RulesError, load_rules
from nuanmb_classes import AnimToolError, UnmatchedFile, UnsupportedVersion, read_anim


def validate_pair(pair: AnimPair, rules: HitboxRules) -> list[DiffRecord]:
    exemption = rules.exemption_reason(pair.name)
    if exemption is not None:
        return [DiffRecord(Severity.SKIP, exemption)]
    if pair.reference is None:
        raise UnmatchedFile(pair.modified)
    modified = read_anim(pair.modified)
    try:
        reference = read_anim(pair.reference)
    except UnsupportedVersion as exc:
        return [
            DiffRecord(
                Severity.UNSAFE,
                f"The modifed anim has a matching vanilla animation that is version V.{exc.label}!",
                field="version",
                reference_value=exc.label,
            )
        ]
    return diff(reference, modified, rules)


def records_for_error(error: Exception) -> list[DiffRecord]:
    if isinstance(error, UnmatchedFile):
        return [DiffRecord(Severity.SKIP, "no vanilla anim was found!")]
    if isinstance(error, AnimToolError):
        return [DiffRecord(Severity.WARNING, f"Can't validate modified file, {error}")]
    return [DiffRecord(Severity.WARNING, f"Can't validate modified file, unexpected error=`{error!r}`")]


def format_record(anim_name: str, record: DiffRecord) -> str:
    if record.severity == Severity.SKIP:
        return f"SKIPPED: Skipping {anim_name}, since {record.reason}"
    return f'{record.severity.value}: Anim="{anim_name}", reason=`{record.reason}`'


@dataclass
class ValidationReport:
    total: int = 0
    unsafe_count: int = 0
    warning_count: int = 0
    skip_count: int = 0
    lines: list[str] = field(default_factory=list)

    def add(self, anim_name: str, records: list[DiffRecord]) -> None:
        """One line per record, but each anim is counted once under its worst severity."""
        for record in records:
            self.lines.append(format_record(anim_name, record))
        severities = {record.severity for record in records}
        if Severity.UNSAFE in severities:
            self.unsafe_count += 1
        elif Severity.WARNING in severities:
            self.warning_count += 1
        elif Severity.SKIP in severities:
            self.skip_count += 1

    def summary_lines(self) -> list[str]:
        return [
            f"Total Modified Anims: {self.total}",
            f"Unsafe Count: {self.unsafe_count}",
            f"Warning Count: {self.warning_count}",
            f"Skip Count: {self.skip_count}",
        ]

    @property
    def exit_code(self) -> int:
        return 1 if self.unsafe_count else 0


def build_report(results: list[PairResult[list[DiffRecord]]]) -> ValidationReport:
    report = ValidationReport(total=len(results))
    for result in results:
        records = result.value if result.ok else records_for_error(result.error)
        report.add(result.pair.name, records)
    return report


def validate_dirs(reference_dir: Path, modified_dir: Path, rules: HitboxRules, jobs: int = 1) -> ValidationReport:
    pairs = pair_anims(reference_dir, modified_dir)
    return build_report(run_pairs(pairs, lambda pair: validate_pair(pair, rules), jobs))


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Validate modified SSBU anims against vanilla.")
    parser.add_argument("-r", "--reference_folder", type=Path, required=True, help="Folder of vanilla anims")
    parser.add_argument("-m", "--modified_folder", type=Path, required=True, help="Folder of modified anims")
    parser.add_argument("--jobs", type=int, default=1, help="Anims validated in parallel.")
    parser.add_argument("--rules", type=Path, help="Rules JSON (default: config/wifi_safe_rules.json)")
    parser.add_argument("--quiet", action="store_true", help="Only print the totals.")
    args = parser.parse_args(argv)

    try:
        rules = load_rules(args.rules)
    except RulesError as exc:
        raise SystemExit(f"Invalid rules: {exc}") from exc

    start_time = time.perf_counter()
    print("Now validating, please wait...")
    report = validate_dirs(args.reference_folder, args.modified_folder, rules, args.jobs)
    if not args.quiet:
        for line in report.lines:
            print(line)
    for line in report.summary_lines():
        print(line)
    print(f"Done! elapsed time = {time.perf_counter() - start_time:.3f}s!")
    sys.exit(report.exit_code)


if __name__ == "__main__":
    main()
