import pytest

from anim_pairing import AnimPair, list_anims, pair_anims, run_pairs


def touch(folder, *names):
    folder.mkdir(parents=True, exist_ok=True)
    for name in names:
        (folder / name).write_bytes(b"")


def test_list_anims_filters_and_sorts(tmp_path):
    touch(tmp_path, "b.nuanmb", "a.NUANMB", "notes.txt", "c.nuanmb.bak")
    (tmp_path / "sub.nuanmb").mkdir()
    assert [p.name for p in list_anims(tmp_path)] == ["a.NUANMB", "b.nuanmb"]


def test_list_anims_missing_folder(tmp_path):
    with pytest.raises(SystemExit):
        list_anims(tmp_path / "missing")


def test_pair_by_file_name(tmp_path):
    touch(tmp_path / "ref", "a00wait1.nuanmb", "a00wait2.nuanmb")
    touch(tmp_path / "mod", "a00wait2.nuanmb", "f01new.nuanmb")
    pairs = pair_anims(tmp_path / "ref", tmp_path / "mod")

    assert [(p.name, p.matched) for p in pairs] == [("a00wait2.nuanmb", True), ("f01new.nuanmb", False)]
    assert pairs[0].reference == tmp_path / "ref" / "a00wait2.nuanmb"
    assert pairs[1].reference is None


def test_same_folder_is_rejected(tmp_path):
    touch(tmp_path, "a.nuanmb")
    with pytest.raises(SystemExit):
        pair_anims(tmp_path, tmp_path)


def test_failures_do_not_stop_the_batch(tmp_path):
    pairs = [AnimPair(tmp_path / f"{i}.nuanmb", None) for i in range(4)]

    def worker(pair):
        if pair.name == "1.nuanmb":
            raise ValueError("broken")
        return pair.name.upper()

    results = run_pairs(pairs, worker)
    assert [r.ok for r in results] == [True, False, True, True]
    assert isinstance(results[1].error, ValueError)
    assert results[2].value == "2.NUANMB"


def test_parallel_results_keep_pair_order(tmp_path):
    pairs = [AnimPair(tmp_path / f"{i:02}.nuanmb", None) for i in range(20)]
    results = run_pairs(pairs, lambda pair: pair.name, jobs=4)
    assert [r.value for r in results] == [p.name for p in pairs]
    assert all(r.ok for r in results)
