"""
Pair modified anims with their vanilla counterparts and run a job per pair.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Generic, Sequence, TypeVar

ANIM_SUFFIX = ".nuanmb"

T = TypeVar("T")


@dataclass(frozen=True)
class AnimPair:
    modified: Path
    reference: Path | None

    @property
    def name(self) -> str:
        return self.modified.name

    @property
    def matched(self) -> bool:
        return self.reference is not None


@dataclass(frozen=True)
class PairResult(Generic[T]):
    pair: AnimPair
    value: T | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def list_anims(folder: Path) -> list[Path]:
    folder = Path(folder)
    if not folder.is_dir():
        raise SystemExit(f"{folder} is not a folder")
    return sorted(p for p in folder.iterdir() if p.is_file() and p.suffix.lower() == ANIM_SUFFIX)


def pair_anims(reference_folder: Path, modified_folder: Path) -> list[AnimPair]:
    """One pair per modified anim; ``reference`` is None when vanilla has no file of that name."""
    if Path(reference_folder).resolve() == Path(modified_folder).resolve():
        raise SystemExit("Specified 'Reference' and 'Modified' folders are the same folders!")
    references = {p.name: p for p in list_anims(reference_folder)}
    return [AnimPair(modified, references.get(modified.name)) for modified in list_anims(modified_folder)]


def _run_one(worker: Callable[[AnimPair], T], pair: AnimPair) -> PairResult[T]:
    try:
        return PairResult(pair, value=worker(pair))
    except Exception as exc:
        # One broken pair must not stop the batch; the caller reports it.
        return PairResult(pair, error=exc)


def run_pairs(
    pairs: Sequence[AnimPair], worker: Callable[[AnimPair], T], jobs: int = 1
) -> list[PairResult[T]]:
    """Run ``worker`` on every pair, results in the same order as ``pairs``."""
    if jobs <= 1 or len(pairs) <= 1:
        return [_run_one(worker, pair) for pair in pairs]
    with ThreadPoolExecutor(max_workers=jobs) as pool:
        return list(pool.map(lambda pair: _run_one(worker, pair), pairs))
