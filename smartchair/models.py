# Data Models - posture labels, request payloads and persisted records
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, TypeAdapter, confloat

from smartchair.utils import to_iso


class PostureStatus(str, Enum):
    """Posture classification outcome"""
    NOT_SITTING = "not_sitting"
    POOR = "poor"
    GOOD = "good"
    LEANING_FORWARD = "leaning_forward"


class Position(BaseModel):
    x: float
    y: float


class Keypoint(BaseModel):
    """PoseNet body landmark (extra fields are ignored)"""
    part: str
    score: float
    position: Position


_keypoint_list = TypeAdapter(List[Keypoint])


def parse_keypoints(raw: Any) -> List[Keypoint]:
    """Validate a list of keypoint dicts; raises ValueError on bad shape"""
    return _keypoint_list.validate_python(raw)


# Pressure weight: finite, non-negative, numeric (bools and strings rejected)
SensorReading = confloat(ge=0, allow_inf_nan=False, strict=True)


class SensorValue(BaseModel):
    """Chair firmware reading format: {"value": number}"""
    value: SensorReading


_sensor_reading = TypeAdapter(Union[SensorReading, SensorValue])


def parse_sensor_values(sensors: Any, expected: int = 4) -> List[float]:
    """
    Normalize a pressure reading to a list of floats
    
    Each element may be a bare number or {"value": number} (chair firmware format).
    
    Raises:
        ValueError: wrong length, non-numeric, negative or non-finite values
    """
    if not isinstance(sensors, list) or len(sensors) != expected:
        raise ValueError(f"expected a list of {expected} sensor readings")

    values = []
    for item in sensors:
        reading = _sensor_reading.validate_python(item)
        values.append(reading.value if isinstance(reading, SensorValue) else reading)
    return values

@dataclass(frozen=True)
class PostureRecord:
    """One persisted observation (never mutated after creation)"""
    chair_id: str
    timestamp: datetime
    posture_status: PostureStatus
    sensors: Optional[List[Any]] = None
    pose_data: Optional[Dict[str, Any]] = None
    id: Optional[int] = field(default=None, compare=False)

    @staticmethod
    def from_row(row: Dict[str, Any]) -> "PostureRecord":
        """Convert a database row mapping to a PostureRecord"""
        return PostureRecord(
            id=row.get("id"),
            chair_id=row["chair_id"],
            timestamp=row["timestamp"],
            posture_status=PostureStatus(row["posture_status"]),
            sensors=row.get("sensors"),
            pose_data=row.get("pose_data"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "chairId": self.chair_id,
            "timestamp": to_iso(self.timestamp),
            "sensors": self.sensors,
            "poseData": self.pose_data,
            "postureStatus": self.posture_status.value,
        }
