# Posture Classifiers - Pressure sensors and PoseNet keypoints (Procedural)
#
# Pressure sensor layout (index -> seat position):
#   0 = front-left    1 = front-right
#   2 = back-left     3 = back-right
from typing import Any, Iterable, Optional, Sequence

from smartchair import config
from smartchair.models import Keypoint, PostureStatus


PRESSURE = config.POSTURE_THRESHOLDS["pressure"]
KEYPOINTS = config.POSTURE_THRESHOLDS["keypoints"]


def classify_pressure(readings: Sequence[float]) -> PostureStatus:
    """
    Evaluate posture from the four chair pressure sensors
    
    Args:
        readings: Exactly 4 non-negative values in seat order (see module header)
        
    Returns:
        - NOT_SITTING if total pressure is too low
        - LEANING_FORWARD if the front pair carries much more than the back pair
        - POOR if the left/right imbalance exceeds 30% of the total
        - GOOD otherwise
    """
    total = sum(readings)

    # Weight too low for an occupant
    if total < PRESSURE["min_total"]:
        return PostureStatus.NOT_SITTING

    left_side = readings[0] + readings[2]
    right_side = readings[1] + readings[3]
    difference = abs(left_side - right_side)

    front = readings[0] + readings[1]
    back = readings[2] + readings[3]

    # Forward lean wins over a general imbalance
    if front > back * PRESSURE["forward_lean_ratio"]:
        return PostureStatus.LEANING_FORWARD

    if difference > total * PRESSURE["imbalance_ratio"]:
        return PostureStatus.POOR

    return PostureStatus.GOOD


def _as_keypoint(kp: Any) -> Keypoint:
    return kp if isinstance(kp, Keypoint) else Keypoint.model_validate(kp)


def find_keypoint(keypoints: Iterable[Keypoint], part: str) -> Optional[Keypoint]:
    """First keypoint with the given part name, or None"""
    return next((kp for kp in keypoints if kp.part == part), None)


def _is_tilted(a: Keypoint, b: Keypoint, ratio: float) -> bool:
    """Vertical offset between two landmarks relative to their horizontal separation"""
    vertical = abs(a.position.y - b.position.y)
    horizontal = abs(a.position.x - b.position.x)
    if horizontal == 0:
        return True  # landmarks coincide horizontally, alignment cannot be judged
    return vertical > horizontal * ratio


def classify_keypoints(keypoints: Iterable[Any]) -> PostureStatus:
    """
    Analyze PoseNet keypoints to determine posture quality
    
    Args:
        keypoints: Keypoint models or dicts with part, score and position
        
    Returns:
        NOT_SITTING, POOR or GOOD
    """
    keypoints = [_as_keypoint(kp) for kp in keypoints]

    nose = find_keypoint(keypoints, "nose")
    left_shoulder = find_keypoint(keypoints, "leftShoulder")
    right_shoulder = find_keypoint(keypoints, "rightShoulder")

    # Essential keypoints must be present and reliable
    essentials = (nose, left_shoulder, right_shoulder)
    if any(kp is None or kp.score < KEYPOINTS["min_score"] for kp in essentials):
        return PostureStatus.NOT_SITTING

    if _is_tilted(left_shoulder, right_shoulder, KEYPOINTS["shoulder_tilt_ratio"]):
        return PostureStatus.POOR

    # Head tilt, only when both ears are detected reliably
    left_ear = find_keypoint(keypoints, "leftEar")
    right_ear = find_keypoint(keypoints, "rightEar")
    if (left_ear and right_ear
            and left_ear.score > KEYPOINTS["ear_min_score"]
            and right_ear.score > KEYPOINTS["ear_min_score"]):
        if _is_tilted(left_ear, right_ear, KEYPOINTS["ear_tilt_ratio"]):
            return PostureStatus.POOR

    return PostureStatus.GOOD
