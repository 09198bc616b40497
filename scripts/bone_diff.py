"""
Compare a modified anim against vanilla and list what makes it wifi-unsafe.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any

from hitbox_rules import HitboxRules
from nuanmb_classes import (
    AnimationDocument,
    BoneTrackGroup,
    Track,
    TrackKind,
    check_same_version,
)


class Severity(enum.Enum):
    UNSAFE = "UNSAFE"
    WARNING = "WARNING"
    SKIP = "SKIPPED"


@dataclass(frozen=True)
class DiffRecord:
    severity: Severity
    reason: str
    bone: str | None = None
    field: str | None = None
    reference_value: Any = None
    modified_value: Any = None
    frame: int | None = None


def _frame_label(value: float) -> str:
    return f"{value:g}"


def _components_differ(a: tuple[float, ...], b: tuple[float, ...], tolerance: float) -> bool:
    if len(a) != len(b):
        return True
    # Written so NaN on either side counts as a difference.
    return any(not abs(x - y) <= tolerance for x, y in zip(a, b))


def compare_transform_tracks(
    bone_name: str, reference: Track, modified: Track, tolerance: float
) -> DiffRecord | None:
    """First difference between two transform tracks, as an UNSAFE record."""
    if reference.compensate_scale != modified.compensate_scale:
        return DiffRecord(
            Severity.UNSAFE,
            f"The modified anim has a different compensate_scale than the vanilla for bone `{bone_name}`!",
            bone=bone_name,
            field="compensate_scale",
            reference_value=reference.compensate_scale,
            modified_value=modified.compensate_scale,
        )

    frame_total = reference.frame_count if reference.frame_count > 1 else modified.frame_count
    for frame in range(frame_total):
        reference_value = reference.value_at(frame)
        modified_value = modified.value_at(frame)
        if modified_value is None:
            return DiffRecord(
                Severity.UNSAFE,
                f"The modified anim has a transform track for bone {bone_name}, "
                "but its length is shorter than the reference!",
                bone=bone_name,
                field="frame_count",
                reference_value=reference.frame_count,
                modified_value=modified.frame_count,
                frame=frame,
            )
        if reference_value is None:
            break
        for (field_name, ref_part), (_, mod_part) in zip(
            reference_value.components(), modified_value.components()
        ):
            if _components_differ(ref_part, mod_part, tolerance):
                return DiffRecord(
                    Severity.UNSAFE,
                    f"The modified anim has different values than the vanilla for bone `{bone_name}`! "
                    f"(frame {frame}, {field_name}: vanilla={list(ref_part)} modified={list(mod_part)})",
                    bone=bone_name,
                    field=field_name,
                    reference_value=ref_part,
                    modified_value=mod_part,
                    frame=frame,
                )
    return None


def _extra_tracks_changed(reference_bone: BoneTrackGroup, modified_bone: BoneTrackGroup) -> list[str]:
    reference_extra = {t.key: t for t in reference_bone.tracks if t.kind != TrackKind.TRANSFORM}
    modified_extra = {t.key: t for t in modified_bone.tracks if t.kind != TrackKind.TRANSFORM}
    changed = []
    for key in list(reference_extra) + [k for k in modified_extra if k not in reference_extra]:
        ref_track = reference_extra.get(key)
        mod_track = modified_extra.get(key)
        if ref_track is None or mod_track is None or not ref_track.same_data(mod_track):
            changed.append(f"{key[0].value}/{key[1]}")
    return changed


def _check_bone(
    reference_bone: BoneTrackGroup, modified_bone: BoneTrackGroup | None, rules: HitboxRules
) -> DiffRecord | None:
    name = reference_bone.name
    modified_transform = modified_bone.transform if modified_bone is not None else None
    if modified_transform is None:
        return DiffRecord(
            Severity.UNSAFE,
            f"The modifed anim is missing the transform track for bone {name}!",
            bone=name,
            field="transform",
        )
    unsafe = compare_transform_tracks(name, reference_bone.transform, modified_transform, rules.transform_tolerance)
    if unsafe is not None or not rules.warn_on_hitbox_extra_changes:
        return unsafe

    changed = _extra_tracks_changed(reference_bone, modified_bone)
    if changed:
        return DiffRecord(
            Severity.WARNING,
            f"The modified anim changes non-transform tracks of hitbox bone `{name}`: {', '.join(changed)}",
            bone=name,
            field="tracks",
            modified_value=tuple(changed),
        )
    return None


def diff(
    reference: AnimationDocument, modified: AnimationDocument, rules: HitboxRules
) -> list[DiffRecord]:
    """
    List the wifi-safety problems of ``modified`` compared to ``reference``.

    Exempt anims (matched on ``modified.name``) give a single SKIP record.
    Otherwise the frame index record comes first, followed by at most one
    record per bone in reference bone order. Raises FormatMismatch if the
    versions differ.
    """
    exemption = rules.exemption_reason(modified.name)
    if exemption is not None:
        return [DiffRecord(Severity.SKIP, exemption)]

    check_same_version(reference, modified)

    records: list[DiffRecord] = []
    if reference.final_frame_index != modified.final_frame_index:
        records.append(
            DiffRecord(
                Severity.UNSAFE,
                f"The modifed anim has a final_frame_index of `{_frame_label(modified.final_frame_index)}`, "
                f"while the matching vanilla anim has a final_frame_index of "
                f"`{_frame_label(reference.final_frame_index)}`",
                field="final_frame_index",
                reference_value=reference.final_frame_index,
                modified_value=modified.final_frame_index,
            )
        )

    modified_bones = modified.bones_by_name()
    for reference_bone in reference.bones:
        if reference_bone.transform is None or not rules.is_hitbox_relevant(reference_bone.name):
            continue
        record = _check_bone(reference_bone, modified_bones.get(reference_bone.name), rules)
        if record is not None:
            records.append(record)
    return records


def is_wifi_safe(records: list[DiffRecord]) -> bool:
    return not any(r.severity == Severity.UNSAFE for r in records)
