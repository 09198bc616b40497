"""
Splice a modified anim onto its vanilla counterpart.

Hitbox bones keep the vanilla Transform track, everything else (visibility,
material, non-hitbox transforms, brand new bones) comes from the modified anim.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from hitbox_rules import HitboxRules
from nuanmb_classes import (
    AnimationDocument,
    BoneTrackGroup,
    Track,
    TrackKind,
    check_same_version,
)


class MergeDecision(enum.Enum):
    TAKE_REFERENCE = "reference"
    TAKE_MODIFIED = "modified"
    # Modified hitbox transform differs from vanilla; vanilla wins.
    CONFLICT = "conflict"


@dataclass(frozen=True)
class TrackDecision:
    bone: str
    kind: TrackKind
    track: str
    decision: MergeDecision


def merged_bone_order(reference: AnimationDocument, modified: AnimationDocument) -> list[str]:
    """Reference bones in reference order, then bones only found in modified."""
    order = reference.bone_names()
    known = set(order)
    for name in modified.bone_names():
        if name not in known:
            order.append(name)
            known.add(name)
    return order


def _decide_bone(
    bone_name: str,
    reference_bone: BoneTrackGroup | None,
    modified_bone: BoneTrackGroup | None,
    rules: HitboxRules,
) -> list[tuple[Track, MergeDecision]]:
    if modified_bone is None:
        return [(t, MergeDecision.TAKE_REFERENCE) for t in reference_bone.tracks]
    if reference_bone is None:
        return [(t, MergeDecision.TAKE_MODIFIED) for t in modified_bone.tracks]

    reference_transform = reference_bone.transform
    if reference_transform is None or not rules.is_hitbox_relevant(bone_name):
        return [(t, MergeDecision.TAKE_MODIFIED) for t in modified_bone.tracks]

    chosen: list[tuple[Track, MergeDecision]] = []
    placed = False
    for track in modified_bone.tracks:
        if track.kind != TrackKind.TRANSFORM:
            chosen.append((track, MergeDecision.TAKE_MODIFIED))
        elif not placed:
            decision = (
                MergeDecision.TAKE_REFERENCE
                if track.same_data(reference_transform)
                else MergeDecision.CONFLICT
            )
            chosen.append((reference_transform, decision))
            placed = True
    if not placed:
        # The modified anim dropped the hitbox transform, put vanilla's back.
        chosen.insert(0, (reference_transform, MergeDecision.CONFLICT))
    return chosen


def _plan(reference: AnimationDocument, modified: AnimationDocument, rules: HitboxRules):
    check_same_version(reference, modified)
    reference_bones = reference.bones_by_name()
    modified_bones = modified.bones_by_name()
    for bone_name in merged_bone_order(reference, modified):
        yield bone_name, _decide_bone(
            bone_name, reference_bones.get(bone_name), modified_bones.get(bone_name), rules
        )


def plan_merge(
    reference: AnimationDocument, modified: AnimationDocument, rules: HitboxRules
) -> list[TrackDecision]:
    return [
        TrackDecision(bone_name, track.kind, track.name, decision)
        for bone_name, chosen in _plan(reference, modified, rules)
        for track, decision in chosen
    ]


def merge(
    reference: AnimationDocument, modified: AnimationDocument, rules: HitboxRules
) -> AnimationDocument:
    """
    Build the spliced anim. Raises FormatMismatch if the versions differ.

    The result uses the modified anim's final frame index and name; neither
    input is changed.
    """
    bones = tuple(
        BoneTrackGroup(bone_name, tuple(track for track, _ in chosen))
        for bone_name, chosen in _plan(reference, modified, rules)
    )
    return AnimationDocument(
        version=reference.version,
        final_frame_index=modified.final_frame_index,
        bones=bones,
        name=modified.name,
    )
