import re

import pytest

from anim_factories import anim, bone, pose, transform_track, visibility_track
from hitbox_rules import Exemption, HitboxRules


@pytest.fixture
def rules():
    """Only ArmR/LegL style bones are hitbox bones, j02* anims are exempt."""
    return HitboxRules(
        default_hitbox_relevant=False,
        hitbox_bone_patterns=(re.compile(r"^Arm[LR]$"), re.compile(r"^Leg[LR]$")),
        exemptions=(Exemption(re.compile(r"^j02"), "it is a victory screen animation."),),
    )


@pytest.fixture
def reference():
    return anim(
        bone("Hip", transform_track(pose(0.0), pose(0.5))),
        bone("ArmR", transform_track(pose(1.0), pose(1.5))),
        bone("Visibility", visibility_track(True, True)),
        final_frame_index=1,
    )


@pytest.fixture
def modified():
    return anim(
        bone("Hip", transform_track(pose(0.0), pose(0.5))),
        bone("ArmR", transform_track(pose(1.0), pose(9.0))),
        bone("Visibility", visibility_track(True, False)),
        bone("LegL", transform_track(pose(2.0), pose(2.0))),
        final_frame_index=1,
    )
