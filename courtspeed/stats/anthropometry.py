"""
Whole-body centre of mass from pose landmarks (Dempster's segment tables).

Each segment's CoM lies on the line from its proximal to its distal
landmark at `com_fraction` of the length. The body CoM is the mass-weighted
mean of the segment CoMs.

A segment only contributes when every landmark defining it is visible.
Mass of the missing segments is handled by the policy:

  RENORMALIZE  weights of the contributing segments are rescaled to sum to 1
  ZERO_FILL    raw weights are kept, as if the missing mass sat at the origin
"""
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple
import numpy as np

from ..models.geometry import CoordinateSpace, Point3D
from ..models.landmarks import LANDMARK_INDEX, LandmarkFrame
from .. import config


class MassPolicy(Enum):
    RENORMALIZE = "renormalize"
    ZERO_FILL   = "zero_fill"


@dataclass(frozen=True)
class SegmentType:
    name:          str
    mass_fraction: float        # of total body mass, per instance
    com_fraction:  float        # from the proximal end


@dataclass(frozen=True)
class Segment:
    name:     str
    kind:     SegmentType
    proximal: Tuple[int, ...]   # landmark indices, averaged
    distal:   Tuple[int, ...]

    @property
    def landmarks(self) -> Tuple[int, ...]:
        return self.proximal + self.distal


# ── Dempster table ────────────────────────────────────────────────────────────
HEAD      = SegmentType("head",      0.0847, 0.0)
TRUNK     = SegmentType("trunk",     0.4833, 0.5)
UPPER_ARM = SegmentType("upper_arm", 0.0280, 0.436)
FOREARM   = SegmentType("forearm",   0.0160, 0.430)
HAND      = SegmentType("hand",      0.0060, 0.506)
THIGH     = SegmentType("thigh",     0.1050, 0.433)
SHANK     = SegmentType("shank",     0.0465, 0.433)
FOOT      = SegmentType("foot",      0.0145, 0.5)

SEGMENT_TYPES: Tuple[SegmentType, ...] = (
    HEAD, TRUNK, UPPER_ARM, FOREARM, HAND, THIGH, SHANK, FOOT,
)


def _i(*names: str) -> Tuple[int, ...]:
    return tuple(LANDMARK_INDEX[n] for n in names)


def _bilateral(kind: SegmentType, proximal: str, distal: str) -> List[Segment]:
    return [
        Segment(f"{side}_{kind.name}", kind,
                _i(f"{side}_{proximal}"), _i(f"{side}_{distal}"))
        for side in ("left", "right")
    ]


SEGMENTS: Tuple[Segment, ...] = tuple(
    [
        Segment("head", HEAD, _i("nose"), ()),
        Segment("trunk", TRUNK,
                _i("left_shoulder", "right_shoulder"), _i("left_hip", "right_hip")),
    ]
    + _bilateral(UPPER_ARM, "shoulder", "elbow")
    + _bilateral(FOREARM,   "elbow",    "wrist")
    + _bilateral(HAND,      "wrist",    "index")
    + _bilateral(THIGH,     "hip",      "knee")
    + _bilateral(SHANK,     "knee",     "ankle")
    + _bilateral(FOOT,      "heel",     "foot_index")
)

FOOT_LANDMARKS = _i("left_ankle", "right_ankle", "left_heel", "right_heel",
                    "left_foot_index", "right_foot_index")


class AnthropometricModel:
    """
    Args:
        policy:     how the mass of hidden segments is redistributed.
        visibility: minimum landmark visibility for a segment to count.
    """

    def __init__(
        self,
        policy: MassPolicy = MassPolicy.RENORMALIZE,
        visibility: float = config.VISIBILITY_THRESHOLD,
    ):
        self.policy     = policy
        self.visibility = visibility

    @property
    def total_mass_fraction(self) -> float:
        return float(sum(s.kind.mass_fraction for s in SEGMENTS))

    def visible_segments(self, frame: LandmarkFrame) -> List[Segment]:
        mask = frame.visible_mask(self.visibility)
        return [s for s in SEGMENTS if all(mask[i] for i in s.landmarks)]

    def segment_centers(
        self,
        frame: LandmarkFrame,
        positions: Optional[np.ndarray] = None,
    ) -> Dict[str, np.ndarray]:
        """CoM of every visible segment, keyed by segment name."""
        pos = frame.positions() if positions is None else np.asarray(positions)
        centers: Dict[str, np.ndarray] = {}
        for seg in self.visible_segments(frame):
            prox = pos[list(seg.proximal)].mean(axis=0)
            if seg.distal:
                dist = pos[list(seg.distal)].mean(axis=0)
                centers[seg.name] = prox + seg.kind.com_fraction * (dist - prox)
            else:
                centers[seg.name] = prox
        return centers

    def center_of_mass(
        self,
        frame: LandmarkFrame,
        positions: Optional[np.ndarray] = None,
        space: Optional[CoordinateSpace] = None,
    ) -> Optional[Point3D]:
        """
        Mass-weighted CoM, or None when no segment is visible.

        `positions` overrides the frame's raw coordinates (e.g. already
        scaled to metres); `space` tags the result and defaults to the
        frame's space.
        """
        centers = self.segment_centers(frame, positions)
        if not centers:
            return None

        by_name = {s.name: s for s in SEGMENTS}
        weights = np.array([by_name[n].kind.mass_fraction for n in centers])
        points  = np.array(list(centers.values()))
        weighted = (weights[:, None] * points).sum(axis=0)
        if self.policy is MassPolicy.RENORMALIZE:
            weighted = weighted / weights.sum()
        return Point3D.from_array(weighted, space or frame.space)

    def center_of_gravity_height(
        self,
        frame: LandmarkFrame,
        positions: Optional[np.ndarray] = None,
        com: Optional[Point3D] = None,
    ) -> float:
        """
        Vertical distance from the CoM down to the lowest visible foot
        landmark (image y grows downwards). 0.0 when no foot is visible.
        """
        pos = frame.positions() if positions is None else np.asarray(positions)
        if com is None:
            com = self.center_of_mass(frame, pos)
        if com is None:
            return 0.0
        mask = frame.visible_mask(self.visibility)
        feet = [pos[i, 1] for i in FOOT_LANDMARKS if mask[i]]
        if not feet:
            return 0.0
        return float(max(0.0, max(feet) - com.y))
