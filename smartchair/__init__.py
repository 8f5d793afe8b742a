"""Smart Chair Posture Server - posture classification, persistence and live updates"""

__version__ = "1.0.0"
