"""
In-memory model of SSBU .nuanmb animations plus the glue to ssbh_data_py.

ssbh_data_py stores an animation as groups (Transform, Visibility, Material,
Camera) of nodes, each node owning tracks. The tools in this folder think in
bones instead, so a document here is a list of bones, each bone holding every
track found under its name regardless of the group it came from.

Reading and writing the binary container is left entirely to ssbh_data_py
(pip install ssbh_data_py).
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Iterable, Sequence


class AnimToolError(Exception):
    """Base class of every error the anim tools report per file pair."""


class FormatMismatch(AnimToolError):
    def __init__(self, reference: "AnimVersion", modified: "AnimVersion") -> None:
        super().__init__(
            f"reference anim is version {reference.label} but modified anim is version {modified.label}"
        )
        self.reference = reference
        self.modified = modified


class UnreadableFile(AnimToolError):
    def __init__(self, path: Path | str, detail: str) -> None:
        super().__init__(f"could not read anim `{path}`: {detail}")
        self.path = Path(path)
        self.detail = detail


class UnsupportedVersion(UnreadableFile):
    def __init__(self, path: Path | str, major: int, minor: int) -> None:
        super().__init__(path, f"version {major}.{minor} is not supported (only 2.0 and 2.1)")
        self.major = major
        self.minor = minor

    @property
    def label(self) -> str:
        return f"{self.major}.{self.minor}"


class WriteFailed(AnimToolError):
    def __init__(self, path: Path | str, detail: str) -> None:
        super().__init__(f"could not output the new anim to the output path `{path}`: {detail}")
        self.path = Path(path)
        self.detail = detail


class UnmatchedFile(AnimToolError):
    def __init__(self, path: Path | str) -> None:
        super().__init__(f"no vanilla anim was found for `{Path(path).name}`")
        self.path = Path(path)


class AnimVersion(enum.Enum):
    V20 = (2, 0)
    V21 = (2, 1)

    @property
    def label(self) -> str:
        major, minor = self.value
        return f"{major}.{minor}"

    @classmethod
    def from_numbers(cls, major: int, minor: int) -> "AnimVersion":
        for version in cls:
            if version.value == (major, minor):
                return version
        raise ValueError(f"version {major}.{minor} is not supported (only 2.0 and 2.1)")


class TrackKind(enum.Enum):
    # Values match ssbh_data_py.anim_data.GroupType attribute names.
    TRANSFORM = "Transform"
    VISIBILITY = "Visibility"
    MATERIAL = "Material"
    CAMERA = "Camera"


# Group order used when writing, same as the game files.
GROUP_ORDER = (TrackKind.TRANSFORM, TrackKind.VISIBILITY, TrackKind.MATERIAL, TrackKind.CAMERA)

TRANSFORM_FLAG_NAMES = (
    "override_translation",
    "override_rotation",
    "override_scale",
    "override_compensate_scale",
)


@dataclass(frozen=True)
class TransformValue:
    scale: tuple[float, float, float] = (1.0, 1.0, 1.0)
    rotation: tuple[float, float, float, float] = (0.0, 0.0, 0.0, 1.0)
    translation: tuple[float, float, float] = (0.0, 0.0, 0.0)

    def components(self) -> Iterable[tuple[str, tuple[float, ...]]]:
        yield "scale", self.scale
        yield "rotation", self.rotation
        yield "translation", self.translation


@dataclass(frozen=True, eq=False)
class Track:
    kind: TrackKind
    name: str
    values: tuple[Any, ...] = ()
    compensate_scale: bool = False
    transform_flags: tuple[bool, bool, bool, bool] = (False, False, False, False)
    # Native ssbh_data_py TrackData this track was read from, if any.
    source: Any = field(default=None, repr=False, compare=False)

    @property
    def key(self) -> tuple[TrackKind, str]:
        return self.kind, self.name

    @property
    def frame_count(self) -> int:
        return len(self.values)

    def value_at(self, frame: int) -> Any | None:
        """Value shown at ``frame``. Single value tracks are constant, past the end is None."""
        if len(self.values) == 1:
            return self.values[0]
        if 0 <= frame < len(self.values):
            return self.values[frame]
        return None

    def same_data(self, other: "Track") -> bool:
        return (
            self.key == other.key
            and self.values == other.values
            and self.compensate_scale == other.compensate_scale
            and self.transform_flags == other.transform_flags
        )


@dataclass(frozen=True)
class BoneTrackGroup:
    name: str
    tracks: tuple[Track, ...] = ()

    def track(self, kind: TrackKind, name: str | None = None) -> Track | None:
        for track in self.tracks:
            if track.kind == kind and (name is None or track.name == name):
                return track
        return None

    @property
    def transform(self) -> Track | None:
        return self.track(TrackKind.TRANSFORM)


@dataclass(frozen=True)
class AnimationDocument:
    version: AnimVersion
    final_frame_index: float
    bones: tuple[BoneTrackGroup, ...] = ()
    name: str = ""

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for bone in self.bones:
            if bone.name in seen:
                raise ValueError(f"bone `{bone.name}` appears twice in anim `{self.name}`")
            seen.add(bone.name)

    def bone(self, name: str) -> BoneTrackGroup | None:
        for bone in self.bones:
            if bone.name == name:
                return bone
        return None

    def bone_names(self) -> list[str]:
        return [bone.name for bone in self.bones]

    def bones_by_name(self) -> dict[str, BoneTrackGroup]:
        return {bone.name: bone for bone in self.bones}

    def renamed(self, name: str) -> "AnimationDocument":
        return replace(self, name=name)


def check_same_version(reference: AnimationDocument, modified: AnimationDocument) -> None:
    if reference.version != modified.version:
        raise FormatMismatch(reference.version, modified.version)


def load_ssbh_data():
    """Import ssbh_data_py, the library that owns the nuanmb container format."""
    try:
        import ssbh_data_py  # type: ignore
    except ImportError as exc:  # pragma: no cover - dependency check
        raise SystemExit(
            "ssbh_data_py is required (pip install ssbh_data_py). "
            f"Details: {exc}"
        ) from exc
    return ssbh_data_py


def _floats(values: Sequence[float]) -> tuple[float, ...]:
    return tuple(float(v) for v in values)


def _convert_value(kind: TrackKind, value: Any) -> Any:
    if kind == TrackKind.TRANSFORM:
        return TransformValue(
            scale=_floats(value.scale),
            rotation=_floats(value.rotation),
            translation=_floats(value.translation),
        )
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, (list, tuple)):
        return _floats(value)
    # Camera values and anything else we don't inspect are kept as-is.
    return value


def _read_flags(native_track) -> tuple[bool, bool, bool, bool]:
    flags = getattr(native_track, "transform_flags", None)
    if flags is None:
        return (False, False, False, False)
    return tuple(bool(getattr(flags, name, False)) for name in TRANSFORM_FLAG_NAMES)  # type: ignore[return-value]


def document_from_anim_data(anim_data, name: str = "") -> AnimationDocument:
    """Build a document from a native ``AnimData`` object."""
    try:
        version = AnimVersion.from_numbers(anim_data.major_version, anim_data.minor_version)
    except ValueError as exc:
        raise UnsupportedVersion(name, anim_data.major_version, anim_data.minor_version) from exc

    tracks_by_bone: dict[str, list[Track]] = {}
    for group in anim_data.groups:
        kind = TrackKind(group.group_type.name)
        seen_nodes: set[str] = set()
        for node in group.nodes:
            if str(node.name) in seen_nodes:
                raise UnreadableFile(name, f"node `{node.name}` appears twice in the {kind.value} group")
            seen_nodes.add(str(node.name))
            bone_tracks = tracks_by_bone.setdefault(str(node.name), [])
            for native_track in node.tracks:
                bone_tracks.append(
                    Track(
                        kind=kind,
                        name=str(native_track.name),
                        values=tuple(_convert_value(kind, v) for v in native_track.values),
                        compensate_scale=bool(getattr(native_track, "compensate_scale", False)),
                        transform_flags=_read_flags(native_track),
                        source=native_track,
                    )
                )

    bones = tuple(BoneTrackGroup(bone_name, tuple(tracks)) for bone_name, tracks in tracks_by_bone.items())
    return AnimationDocument(
        version=version,
        final_frame_index=float(anim_data.final_frame_index),
        bones=bones,
        name=name,
    )


def read_anim(path: Path) -> AnimationDocument:
    ssbh_data_py = load_ssbh_data()
    path = Path(path)
    try:
        anim_data = ssbh_data_py.anim_data.read_anim(str(path))
    except Exception as exc:
        raise UnreadableFile(path, str(exc)) from exc
    try:
        return document_from_anim_data(anim_data, path.name)
    except UnsupportedVersion as exc:
        raise UnsupportedVersion(path, exc.major, exc.minor) from exc
    except UnreadableFile as exc:
        raise UnreadableFile(path, exc.detail) from exc


def _native_value(anim_module, kind: TrackKind, value: Any) -> Any:
    if kind == TrackKind.TRANSFORM:
        return anim_module.Transform(list(value.scale), list(value.rotation), list(value.translation))
    if isinstance(value, tuple):
        return list(value)
    return value


def _native_track(anim_module, track: Track):
    if track.source is not None:
        return track.source
    native = anim_module.TrackData(track.name)
    native.values = [_native_value(anim_module, track.kind, v) for v in track.values]
    if track.kind == TrackKind.TRANSFORM:
        native.compensate_scale = track.compensate_scale
        if any(track.transform_flags):
            flags = native.transform_flags
            for flag_name, flag in zip(TRANSFORM_FLAG_NAMES, track.transform_flags):
                setattr(flags, flag_name, flag)
            native.transform_flags = flags
    return native


def group_tracks(document: AnimationDocument) -> list[tuple[TrackKind, list[tuple[str, list[Track]]]]]:
    """Regroup a document's tracks by kind, nodes sorted by lower-cased name inside each group."""
    grouped: list[tuple[TrackKind, list[tuple[str, list[Track]]]]] = []
    for kind in GROUP_ORDER:
        nodes: list[tuple[str, list[Track]]] = []
        for bone in document.bones:
            tracks = [t for t in bone.tracks if t.kind == kind]
            if tracks:
                nodes.append((bone.name, tracks))
        if nodes:
            nodes.sort(key=lambda node: node[0].lower())
            grouped.append((kind, nodes))
    return grouped


def anim_data_from_document(document: AnimationDocument, ssbh_data_py=None):
    ssbh_data_py = ssbh_data_py or load_ssbh_data()
    anim_module = ssbh_data_py.anim_data
    major, minor = document.version.value
    anim_data = anim_module.AnimData(major_version=major, minor_version=minor)
    anim_data.final_frame_index = document.final_frame_index

    groups = []
    for kind, nodes in group_tracks(document):
        group = anim_module.GroupData(getattr(anim_module.GroupType, kind.value))
        native_nodes = []
        for bone_name, tracks in nodes:
            node = anim_module.NodeData(bone_name)
            node.tracks = [_native_track(anim_module, t) for t in tracks]
            native_nodes.append(node)
        group.nodes = native_nodes
        groups.append(group)
    anim_data.groups = groups
    return anim_data


def write_anim(document: AnimationDocument, path: Path) -> Path:
    path = Path(path)
    try:
        anim_data = anim_data_from_document(document)
        path.parent.mkdir(parents=True, exist_ok=True)
        anim_data.save(str(path))
    except Exception as exc:
        # ssbh_data_py raises its own error types on top of OSError.
        raise WriteFailed(path, str(exc)) from exc
    return path
