import pytest

import wifi_safe_anim_splicer as splicer
import wifi_safe_anim_validator as validator
from anim_factories import anim, bone, pose, transform_track, visibility_track
from bone_diff import DiffRecord, Severity
from nuanmb_classes import AnimVersion, UnreadableFile, UnsupportedVersion


def vanilla():
    return anim(
        bone("Hip", transform_track(pose(0.0))),
        bone("ArmR", transform_track(pose(1.0))),
        bone("Visibility", visibility_track(True)),
    )


def modded():
    return anim(
        bone("Hip", transform_track(pose(0.0))),
        bone("ArmR", transform_track(pose(5.0))),
        bone("Visibility", visibility_track(False)),
    )


@pytest.fixture
def folders(tmp_path):
    """Empty files on disk, contents served by a fake read_anim keyed on (folder, file)."""
    ref_dir = tmp_path / "vanilla"
    mod_dir = tmp_path / "modded"
    ref_dir.mkdir()
    mod_dir.mkdir()
    docs = {
        ("vanilla", "a00wait1.nuanmb"): vanilla(),
        ("modded", "a00wait1.nuanmb"): vanilla(),
        ("vanilla", "a00wait2.nuanmb"): vanilla(),
        ("modded", "a00wait2.nuanmb"): modded(),
        ("vanilla", "a00wait3.nuanmb"): vanilla(),
        ("modded", "a00wait3.nuanmb"): anim(version=AnimVersion.V21),
        ("vanilla", "a00wait4.nuanmb"): vanilla(),
        ("modded", "f01new.nuanmb"): modded(),
        ("modded", "j02win1.nuanmb"): modded(),
        ("vanilla", "j02win1.nuanmb"): vanilla(),
    }
    for folder, name in docs:
        (tmp_path / folder / name).write_bytes(b"")
    (mod_dir / "a00wait4.nuanmb").write_bytes(b"")

    def fake_read_anim(path):
        key = (path.parent.name, path.name)
        if key not in docs:
            raise UnreadableFile(path, "bad magic")
        return docs[key].renamed(path.name)

    return ref_dir, mod_dir, fake_read_anim


def test_validator_report(folders, monkeypatch, rules):
    ref_dir, mod_dir, fake_read_anim = folders
    monkeypatch.setattr(validator, "read_anim", fake_read_anim)

    report = validator.validate_dirs(ref_dir, mod_dir, rules, jobs=2)

    assert report.lines[0].startswith('UNSAFE: Anim="a00wait2.nuanmb", reason=`The modified anim has different values')
    assert report.lines[1].startswith("WARNING: Anim=\"a00wait3.nuanmb\", reason=`Can't validate modified file, reference anim is version 2.0")
    assert report.lines[2].startswith("WARNING: Anim=\"a00wait4.nuanmb\", reason=`Can't validate modified file, could not read anim")
    assert report.lines[3:] == [
        "SKIPPED: Skipping f01new.nuanmb, since no vanilla anim was found!",
        "SKIPPED: Skipping j02win1.nuanmb, since it is a victory screen animation.",
    ]
    assert report.summary_lines() == [
        "Total Modified Anims: 6",
        "Unsafe Count: 1",
        "Warning Count: 2",
        "Skip Count: 2",
    ]
    assert report.exit_code == 1


def test_validator_main_exit_status(folders, monkeypatch, capsys):
    ref_dir, mod_dir, fake_read_anim = folders
    monkeypatch.setattr(validator, "read_anim", fake_read_anim)

    with pytest.raises(SystemExit) as excinfo:
        validator.main(["-r", str(ref_dir), "-m", str(mod_dir), "--quiet"])

    assert excinfo.value.code == 1
    out = capsys.readouterr().out
    assert "Unsafe Count: 1" in out
    assert "UNSAFE:" not in out


def test_validator_clean_run_exits_zero(tmp_path, monkeypatch, capsys):
    ref_dir, mod_dir = tmp_path / "vanilla", tmp_path / "modded"
    for folder in (ref_dir, mod_dir):
        folder.mkdir()
        (folder / "a00wait1.nuanmb").write_bytes(b"")
    monkeypatch.setattr(validator, "read_anim", lambda path: vanilla().renamed(path.name))

    with pytest.raises(SystemExit) as excinfo:
        validator.main(["-r", str(ref_dir), "-m", str(mod_dir)])

    assert excinfo.value.code == 0
    assert "Total Modified Anims: 1" in capsys.readouterr().out


def test_format_record():
    unsafe = DiffRecord(Severity.UNSAFE, "bad bone")
    skip = DiffRecord(Severity.SKIP, "it is exempt.")
    assert validator.format_record("a.nuanmb", unsafe) == 'UNSAFE: Anim="a.nuanmb", reason=`bad bone`'
    assert validator.format_record("a.nuanmb", skip) == "SKIPPED: Skipping a.nuanmb, since it is exempt."


def test_unexpected_errors_become_warnings():
    (record,) = validator.records_for_error(RuntimeError("boom"))
    assert record.severity == Severity.WARNING
    assert "boom" in record.reason


def test_splicer_batch_mode(folders, monkeypatch, tmp_path, rules, capsys):
    ref_dir, mod_dir, fake_read_anim = folders
    written = {}
    monkeypatch.setattr(splicer, "read_anim", fake_read_anim)
    monkeypatch.setattr(splicer, "write_anim", lambda doc, path: written.setdefault(path, doc))
    out_dir = tmp_path / "out"

    count = splicer.do_batch_mode(ref_dir, mod_dir, out_dir, rules)

    # j02 anims are spliced too, only the validator skips them.
    assert count == 3
    assert sorted(p.name for p in written) == ["a00wait1.nuanmb", "a00wait2.nuanmb", "j02win1.nuanmb"]
    spliced = written[out_dir / "a00wait2.nuanmb"]
    assert spliced.bone("ArmR").transform.values == (pose(1.0),)
    assert spliced.bone("Visibility").tracks[0].values == (False,)

    out = capsys.readouterr().out
    assert "Skipping modified file f01new.nuanmb, no vanilla anim was found!" in out
    assert "[WARN] An error" in out and "a00wait3.nuanmb" in out and "a00wait4.nuanmb" in out


def test_splicer_single_mode_error_exits(monkeypatch, tmp_path):
    def broken(path):
        raise UnreadableFile(path, "bad magic")

    monkeypatch.setattr(splicer, "read_anim", broken)
    args = ["-r", str(tmp_path / "a.nuanmb"), "-m", str(tmp_path / "b.nuanmb"), "-o", str(tmp_path / "c.nuanmb")]
    with pytest.raises(SystemExit) as excinfo:
        splicer.main(args)
    assert str(excinfo.value.code).startswith("Error: could not read anim")


def test_splicer_single_mode_writes(monkeypatch, tmp_path, capsys):
    docs = {"a.nuanmb": vanilla(), "b.nuanmb": modded()}
    written = {}
    monkeypatch.setattr(splicer, "read_anim", lambda path: docs[path.name].renamed(path.name))
    monkeypatch.setattr(splicer, "write_anim", lambda doc, path: written.setdefault(path, doc))

    splicer.main(["-r", str(tmp_path / "a.nuanmb"), "-m", str(tmp_path / "b.nuanmb"), "-o", str(tmp_path / "c.nuanmb")])

    doc = written[tmp_path / "c.nuanmb"]
    assert doc.bone("ArmR").transform.values == (pose(1.0),)
    assert "restored vanilla transform for 1 hitbox bones" in capsys.readouterr().out


@pytest.mark.parametrize(
    "argv",
    [
        [],
        ["--reference_folder", "vanilla"],
        ["-r", "a.nuanmb", "-o", "c.nuanmb"],
    ],
)
def test_splicer_argument_errors(argv):
    with pytest.raises(SystemExit) as excinfo:
        splicer.main(argv)
    assert excinfo.value.code == 2


def test_get_mode():
    parser = splicer.build_parser()
    assert splicer.get_mode(parser.parse_args(["--output_folder", "out"])) == "batch"
    assert splicer.get_mode(parser.parse_args(["-o", "out.nuanmb"])) == "single"
    assert splicer.get_mode(parser.parse_args([])) is None


def test_each_anim_counted_once_under_its_worst_severity(tmp_path, monkeypatch, rules):
    ref_dir, mod_dir = tmp_path / "vanilla", tmp_path / "modded"
    for folder in (ref_dir, mod_dir):
        folder.mkdir()
        (folder / "a00wait1.nuanmb").write_bytes(b"")
    docs = {
        "vanilla": anim(
            bone("ArmL", transform_track(pose(0.0))),
            bone("ArmR", transform_track(pose(1.0))),
            final_frame_index=25,
        ),
        "modded": anim(
            bone("ArmL", transform_track(pose(3.0))),
            bone("ArmR", transform_track(pose(4.0))),
            final_frame_index=48,
        ),
    }
    monkeypatch.setattr(validator, "read_anim", lambda path: docs[path.parent.name].renamed(path.name))

    report = validator.validate_dirs(ref_dir, mod_dir, rules)

    assert len(report.lines) == 3
    assert report.summary_lines() == [
        "Total Modified Anims: 1",
        "Unsafe Count: 1",
        "Warning Count: 0",
        "Skip Count: 0",
    ]


def test_warning_and_skip_records_count_once():
    report = validator.ValidationReport(total=2)
    report.add("a.nuanmb", [DiffRecord(Severity.WARNING, "one"), DiffRecord(Severity.WARNING, "two")])
    report.add("b.nuanmb", [DiffRecord(Severity.SKIP, "exempt")])
    report.add("c.nuanmb", [])
    assert (report.unsafe_count, report.warning_count, report.skip_count) == (0, 1, 1)
    assert len(report.lines) == 3


def test_old_version_vanilla_is_unsafe(tmp_path, monkeypatch, rules):
    ref_dir, mod_dir = tmp_path / "vanilla", tmp_path / "modded"
    for folder in (ref_dir, mod_dir):
        folder.mkdir()
        (folder / "a00wait1.nuanmb").write_bytes(b"")

    def fake_read_anim(path):
        if path.parent.name == "vanilla":
            raise UnsupportedVersion(path, 1, 2)
        return vanilla().renamed(path.name)

    monkeypatch.setattr(validator, "read_anim", fake_read_anim)
    report = validator.validate_dirs(ref_dir, mod_dir, rules)

    assert report.lines == [
        'UNSAFE: Anim="a00wait1.nuanmb", reason=`The modifed anim has a matching vanilla animation that is version V.1.2!`'
    ]
    assert report.unsafe_count == 1


def test_old_version_modified_is_a_warning(tmp_path, monkeypatch, rules):
    ref_dir, mod_dir = tmp_path / "vanilla", tmp_path / "modded"
    for folder in (ref_dir, mod_dir):
        folder.mkdir()
        (folder / "a00wait1.nuanmb").write_bytes(b"")

    def fake_read_anim(path):
        if path.parent.name == "modded":
            raise UnsupportedVersion(path, 1, 2)
        return vanilla().renamed(path.name)

    monkeypatch.setattr(validator, "read_anim", fake_read_anim)
    report = validator.validate_dirs(ref_dir, mod_dir, rules)

    assert report.warning_count == 1
    assert "version 1.2 is not supported" in report.lines[0]
