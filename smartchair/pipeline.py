# Ingestion Pipeline - validate -> register -> classify -> persist -> broadcast
from datetime import datetime
from typing import Any, Callable, Dict

from smartchair import config
from smartchair import logger
from smartchair.classifiers import classify_pressure, classify_keypoints
from smartchair.database import PostureStore
from smartchair.errors import InvalidInputError, IngestionError
from smartchair.models import PostureRecord, parse_keypoints, parse_sensor_values
from smartchair.registry import ChairRegistry
from smartchair.utils import utcnow, to_iso

INVALID_SENSORS_MESSAGE = "Invalid sensor data format"
INVALID_KEYPOINTS_MESSAGE = "Invalid keypoints data"


class IngestionPipeline:
    """
    Handles one inbound observation per call
    
    Collaborators are injected so tests can swap the store and broadcaster.
    A record is broadcast only after it has been saved.
    """

    def __init__(self, registry: ChairRegistry, store: PostureStore, broadcaster,
                 clock: Callable[[], datetime] = utcnow):
        self.registry = registry
        self.store = store
        self.broadcaster = broadcaster
        self.clock = clock

    def register_chair(self, chair_id: Any) -> str:
        """Default missing/empty ids to "unknown" and add to the registry"""
        chair_id = str(chair_id) if chair_id not in (None, "") else config.DEFAULT_CHAIR_ID
        if self.registry.register(chair_id):
            logger.log_chair("New Chair Registered", {
                "chair_id": chair_id,
                "known_chairs": len(self.registry)
            })
        return chair_id

    async def _persist_and_broadcast(self, record: PostureRecord, event: str,
                                     payload: Dict[str, Any]) -> None:
        await self.store.save(record)
        self.broadcaster.emit(event, payload)

    async def ingest_pressure(self, chair_id: Any, sensors: Any) -> Dict[str, str]:
        """
        Classify and store one set of chair pressure readings
        
        Args:
            chair_id: Chair identifier (optional)
            sensors: 4 readings, bare numbers or {"value": n}
            
        Returns:
            {"postureStatus": <label>}
            
        Raises:
            InvalidInputError: sensors missing or malformed (nothing is registered or saved)
            IngestionError: classification, persistence or broadcast failed
        """
        try:
            values = parse_sensor_values(sensors, config.SENSOR_COUNT)
        except ValueError as e:
            logger.log_warning("Invalid Sensor Data", {"chair_id": chair_id, "reason": str(e)})
            raise InvalidInputError(INVALID_SENSORS_MESSAGE) from e

        chair_id = self.register_chair(chair_id)

        try:
            posture_status = classify_pressure(values)
            timestamp = self.clock()

            record = PostureRecord(
                chair_id=chair_id,
                timestamp=timestamp,
                posture_status=posture_status,
                sensors=sensors,
            )
            await self._persist_and_broadcast(record, config.CHAIR_DATA_EVENT, {
                "chairId": chair_id,
                "sensors": sensors,
                "timestamp": to_iso(timestamp),
                "postureStatus": posture_status.value,
                "source": "sensors"
            })
        except Exception as e:
            logger.log_error("Chair Data Processing Failed", e, {"chair_id": chair_id})
            raise IngestionError() from e

        logger.log_chair("Posture Evaluated", {
            "chair_id": chair_id,
            "sensors": values,
            "posture": posture_status.value
        })
        return {"postureStatus": posture_status.value}

    async def ingest_pose(self, chair_id: Any, keypoints: Any) -> Dict[str, str]:
        """
        Classify and store one set of PoseNet keypoints
        
        The chair id is registered before the keypoints are validated.
        
        Raises:
            InvalidInputError: keypoints missing or malformed
            IngestionError: classification, persistence or broadcast failed
        """
        chair_id = self.register_chair(chair_id)

        if not isinstance(keypoints, list):
            logger.log_warning("Invalid Keypoints", {"chair_id": chair_id, "reason": "not a list"})
            raise InvalidInputError(INVALID_KEYPOINTS_MESSAGE)
        try:
            parsed = parse_keypoints(keypoints)
        except ValueError as e:
            logger.log_warning("Invalid Keypoints", {"chair_id": chair_id, "reason": str(e)})
            raise InvalidInputError(INVALID_KEYPOINTS_MESSAGE) from e

        try:
            posture_status = classify_keypoints(parsed)
            timestamp = self.clock()

            record = PostureRecord(
                chair_id=chair_id,
                timestamp=timestamp,
                posture_status=posture_status,
                pose_data={"keypoints": keypoints},
            )
            await self._persist_and_broadcast(record, config.POSTURE_UPDATE_EVENT, {
                "chairId": chair_id,
                "postureStatus": posture_status.value,
                "hasPoseData": True,
                "source": "posenet",
                "timestamp": to_iso(timestamp)
            })
        except Exception as e:
            logger.log_error("PoseNet Data Processing Failed", e, {"chair_id": chair_id})
            raise IngestionError() from e

        logger.log_pose("Posture Evaluated", {
            "chair_id": chair_id,
            "keypoints": len(parsed),
            "posture": posture_status.value
        })
        return {"postureStatus": posture_status.value}
