#!/usr/bin/env python3
"""
Splice modified SSBU .nuanmb anims onto vanilla ones so they stay wifi-safe.

Single file:
    python scripts/wifi_safe_anim_splicer.py -r vanilla/a00wait1.nuanmb \
        -m modded/a00wait1.nuanmb -o out/a00wait1.nuanmb

Whole folders (files are matched by name):
    python scripts/wifi_safe_anim_splicer.py --reference_folder vanilla \
        --modified_folder modded --output_folder out

Hitbox bones keep the vanilla Transform data, everything else comes from the
modified anim. Rules are read from config/wifi_safe_rules.json (see --rules).
"""

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path

SCRIPT_DIR = Path(__file__).resolve().parent
if str(SCRIPT_DIR) not in sys.path:
    sys.path.insert(0, str(SCRIPT_DIR))

from anim_pairing import AnimPair, pair_anims, run_pairs
from bone_merge import MergeDecision, merge, plan_merge
from hitbox_rules import HitboxRules, RulesError, load_rules
from nuanmb_classes import AnimToolError, read_anim, write_anim


def splice_files(reference_path: Path, modified_path: Path, output_path: Path, rules: HitboxRules) -> int:
    """Write the spliced anim and return how many hitbox transforms were restored from vanilla."""
    reference = read_anim(reference_path)
    modified = read_anim(modified_path)
    restored = sum(
        1 for decision in plan_merge(reference, modified, rules) if decision.decision == MergeDecision.CONFLICT
    )
    write_anim(merge(reference, modified, rules), output_path)
    return restored


def do_single_mode(reference_path: Path, modified_path: Path, output_path: Path, rules: HitboxRules) -> None:
    restored = splice_files(reference_path, modified_path, output_path, rules)
    print(f"Wrote {output_path} (restored vanilla transform for {restored} hitbox bones)")


def do_batch_mode(
    reference_dir: Path, modified_dir: Path, output_dir: Path, rules: HitboxRules, jobs: int = 1
) -> int:
    """Splice every matching pair, returns the number of anims written."""
    pairs = pair_anims(reference_dir, modified_dir)
    matched: list[AnimPair] = []
    for pair in pairs:
        if pair.matched:
            matched.append(pair)
        else:
            print(f"Skipping modified file {pair.name}, no vanilla anim was found!")

    def splice_pair(pair: AnimPair) -> int:
        return splice_files(pair.reference, pair.modified, output_dir / pair.name, rules)

    written = 0
    for result in run_pairs(matched, splice_pair, jobs):
        if result.ok:
            written += 1
            continue
        print(
            f"[WARN] An error `{result.error}` happened splicing {result.pair.name} "
            f"with {result.pair.reference}, so no spliced anim will be outputted."
        )
    print(f"Spliced {written}/{len(pairs)} modified anims into {output_dir}")
    return written


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Splice modified SSBU anims onto vanilla hitbox data.")
    parser.add_argument("-r", "--reference_anim_file", type=Path, help="Vanilla .nuanmb")
    parser.add_argument("-m", "--modified_anim_file", type=Path, help="Modified .nuanmb")
    parser.add_argument("-o", "--output_file", type=Path, help="Where to write the spliced .nuanmb")
    parser.add_argument("--reference_folder", type=Path, help="Folder of vanilla anims (batch mode)")
    parser.add_argument("--modified_folder", type=Path, help="Folder of modified anims (batch mode)")
    parser.add_argument("--output_folder", type=Path, help="Folder receiving spliced anims (batch mode)")
    parser.add_argument("--jobs", type=int, default=1, help="Anims spliced in parallel in batch mode.")
    parser.add_argument("--rules", type=Path, help="Rules JSON (default: config/wifi_safe_rules.json)")
    return parser


def get_mode(args: argparse.Namespace) -> str | None:
    if args.reference_folder or args.modified_folder or args.output_folder:
        return "batch"
    if args.reference_anim_file or args.modified_anim_file or args.output_file:
        return "single"
    return None


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    mode = get_mode(args)
    if mode is None:
        parser.error("No arguments passed in! Please run with -h or --help for help.")

    if mode == "batch":
        missing = [
            flag
            for flag, value in (
                ("--reference_folder", args.reference_folder),
                ("--modified_folder", args.modified_folder),
                ("--output_folder", args.output_folder),
            )
            if value is None
        ]
    else:
        missing = [
            flag
            for flag, value in (
                ("--reference_anim_file", args.reference_anim_file),
                ("--modified_anim_file", args.modified_anim_file),
                ("--output_file", args.output_file),
            )
            if value is None
        ]
    if missing:
        parser.error(f"{mode} mode specified, but {', '.join(missing)} is missing!")

    try:
        rules = load_rules(args.rules)
    except RulesError as exc:
        raise SystemExit(f"Invalid rules: {exc}") from exc

    start_time = time.perf_counter()
    if mode == "batch":
        do_batch_mode(args.reference_folder, args.modified_folder, args.output_folder, rules, args.jobs)
    else:
        try:
            do_single_mode(args.reference_anim_file, args.modified_anim_file, args.output_file, rules)
        except AnimToolError as exc:
            raise SystemExit(f"Error: {exc}") from exc
    print(f"Done! elapsed time = {time.perf_counter() - start_time:.3f}s!")


if __name__ == "__main__":
    main()
