"""Presence Monitor - rate-limited alerts on continuous human presence."""

__version__ = "1.0.0"

# Lazy imports keep OpenCV and FastAPI out of lightweight imports
__all__ = [
    'settings',
    'ConfigStore',
    'SignalingConfig',
    'ContinuityTracker',
    'SignalGate',
    'SignalingController',
    'CaptureSession',
]


def __getattr__(name):
    """Lazy import of modules."""
    if name == 'settings':
        from .config import get_settings
        return get_settings()
    elif name in ('ConfigStore', 'SignalingConfig'):
        from . import config
        return getattr(config, name)
    elif name == 'ContinuityTracker':
        from .events.continuity import ContinuityTracker
        return ContinuityTracker
    elif name == 'SignalGate':
        from .events.signal_gate import SignalGate
        return SignalGate
    elif name == 'SignalingController':
        from .signaling import SignalingController
        return SignalingController
    elif name == 'CaptureSession':
        from .session import CaptureSession
        return CaptureSession
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
