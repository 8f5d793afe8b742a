"""
Smart Chair Simulator

Streams synthetic observations to a running server
- sensors mode: 4 pressure readings to POST /chair
- posenet mode: PoseNet keypoints to POST /posenet
- Realistic variation using a bounded random walk

Usage:
    python -m smartchair.simulator --chair-id chair-1 --posture good
    python -m smartchair.simulator --mode posenet --posture poor --hz 2 --count 50
"""

import argparse
import random
import sys
import time
from typing import Dict, List, Optional, Tuple

import requests

from smartchair import config

# Base pressure per posture: front-left, front-right, back-left, back-right
SENSOR_PROFILES = {
    "good": (120.0, 120.0, 130.0, 130.0),
    "poor": (150.0, 40.0, 160.0, 50.0),
    "leaning_forward": (220.0, 220.0, 60.0, 60.0),
    "not_sitting": (20.0, 15.0, 25.0, 10.0),
}

# Random walk configuration
PRESSURE_CHANGE_MAX = 5.0  # Max change per reading
PRESSURE_DRIFT_RATIO = 0.15  # Stay within ±15% of the base profile

POSENET_POSTURES = ("good", "poor", "not_sitting")


class PressureTracker:
    """Tracks current sensor values with random walk"""

    def __init__(self, posture: str):
        self.base = SENSOR_PROFILES[posture]
        self.current = list(self.base)

    def next_values(self) -> List[float]:
        """Generate next set of readings using random walk"""
        for i, base in enumerate(self.base):
            delta = random.uniform(-PRESSURE_CHANGE_MAX, PRESSURE_CHANGE_MAX)
            low = base * (1 - PRESSURE_DRIFT_RATIO)
            high = base * (1 + PRESSURE_DRIFT_RATIO)

            # Clamp to the profile band
            self.current[i] = max(low, min(high, self.current[i] + delta))

        return [round(v, 1) for v in self.current]


def generate_keypoints(posture: str) -> List[Dict]:
    """Generate a PoseNet keypoint set that classifies as the given posture"""
    jitter = lambda: random.uniform(-2.0, 2.0)
    score = random.uniform(0.85, 0.99) if posture != "not_sitting" else random.uniform(0.05, 0.25)

    # Shoulder tilt well above the 20% ratio for poor posture
    tilt = 60.0 if posture == "poor" else 0.0

    points = {
        "nose": (320.0, 120.0),
        "leftEar": (290.0, 110.0),
        "rightEar": (350.0, 110.0),
        "leftShoulder": (250.0, 220.0),
        "rightShoulder": (390.0, 220.0 + tilt),
    }

    return [
        {
            "part": part,
            "score": round(score, 3),
            "position": {"x": round(x + jitter(), 1), "y": round(y + jitter(), 1)}
        }
        for part, (x, y) in points.items()
    ]


def send_observation(base_url: str, mode: str, chair_id: str, payload) -> Tuple[bool, dict]:
    """Send one observation to the server"""
    if mode == "sensors":
        url, body = f"{base_url}/chair", {"id": chair_id, "sensors": payload}
    else:
        url, body = f"{base_url}/posenet", {"chairId": chair_id, "keypoints": payload}

    try:
        response = requests.post(url, json=body, timeout=5)
        if response.status_code == 200:
            return True, response.json()
        return False, {"error": response.status_code, "detail": response.text[:100]}

    except requests.exceptions.Timeout:
        return False, {"error": "timeout"}
    except requests.exceptions.RequestException as e:
        return False, {"error": str(e)}


def run_stream(base_url: str, chair_id: str, mode: str, posture: str,
               hz: float = 1.0, count: Optional[int] = None) -> int:
    """
    Stream observations until `count` is reached or the user interrupts
    
    Returns:
        Number of observations the server accepted
    """
    print(f"\n{'='*80}")
    print(f"🎬 STARTING STREAM")
    print(f"{'='*80}")
    print(f"Server: {base_url}")
    print(f"Chair ID: {chair_id}")
    print(f"Mode: {mode} | Posture: {posture} | Rate: {hz} Hz")
    print(f"{'='*80}\n")

    tracker = PressureTracker(posture) if mode == "sensors" else None
    interval = 1.0 / hz

    sent = 0
    total_sent = 0
    total_failed = 0
    start_time = time.time()

    try:
        while count is None or sent < count:
            loop_start = time.time()
            sent += 1

            payload = tracker.next_values() if tracker else generate_keypoints(posture)
            success, result = send_observation(base_url, mode, chair_id, payload)

            if success:
                total_sent += 1
                print(f"#{sent:5d} | {mode.upper():7s} | posture: {result.get('postureStatus')}")
            else:
                total_failed += 1
                # Show first 10 errors only
                if total_failed <= 10:
                    print(f"❌ #{sent} FAILED: {result}")
                    if total_failed == 10:
                        print(f"... (suppressing further error messages) ...")

            sleep_time = max(0, interval - (time.time() - loop_start))
            if sleep_time > 0 and (count is None or sent < count):
                time.sleep(sleep_time)

    except KeyboardInterrupt:
        print(f"\n\n⚠️  Stream interrupted by user")

    print(f"\n{'='*80}")
    print(f"Stream ended | Sent: {total_sent} | Failed: {total_failed} | "
          f"Duration: {time.time() - start_time:.1f}s")
    print(f"{'='*80}\n")

    return total_sent


def main(argv=None):
    parser = argparse.ArgumentParser(description="Smart Chair Simulator")
    parser.add_argument("--url", default=f"http://localhost:{config.PORT}", help="Server base URL")
    parser.add_argument("--chair-id", default="sim-chair-1", help="Chair identifier")
    parser.add_argument("--mode", choices=["sensors", "posenet"], default="sensors")
    parser.add_argument("--posture", choices=sorted(SENSOR_PROFILES), default="good")
    parser.add_argument("--hz", type=float, default=1.0, help="Observations per second (default: 1)")
    parser.add_argument("--count", type=int, help="Stop after N observations")

    args = parser.parse_args(argv)

    if args.mode == "posenet" and args.posture not in POSENET_POSTURES:
        parser.error(f"posenet mode supports: {', '.join(POSENET_POSTURES)}")
    if args.hz <= 0:
        parser.error("--hz must be positive")

    total = run_stream(args.url.rstrip("/"), args.chair_id, args.mode, args.posture, args.hz, args.count)

    print(f"✅ Simulator finished! Accepted observations: {total}\n")
    return 0 if total else 1


if __name__ == "__main__":
    sys.exit(main())
