"""Value types shared by the sync engine: affect parameters, emotional
state, conversation messages, connectivity status and collaborator errors."""

import math
from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timezone

from affect_sync.classifier import classify

PARAM_MIN = 1.0
PARAM_MAX = 7.0

# attribute name -> wire (JSON) name
WIRE_NAMES = {
    "valence": "valence",
    "arousal": "arousal",
    "selection_threshold": "selectionThreshold",
    "resolution": "resolution",
    "goal_directedness": "goalDirectedness",
    "securing_rate": "securingRate",
}
_ATTR_NAMES = {wire: attr for attr, wire in WIRE_NAMES.items()}


class CollaboratorError(Exception):
    """Base class for failures talking to the Psi backend."""


class TransportFailure(CollaboratorError):
    """Backend unreachable, timed out, or answered with a non-success status."""


class MalformedResponse(CollaboratorError):
    """Backend answered 2xx but the body could not be decoded."""


def resolve_param_name(name):
    """Map a wire or attribute parameter name to the attribute name."""
    if name in WIRE_NAMES:
        return name
    if name in _ATTR_NAMES:
        return _ATTR_NAMES[name]
    raise KeyError(f"Unknown affect parameter: {name!r}")


def check_param_value(name, value):
    """Return value as a float, or raise ValueError if it is outside [1, 7]."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{name} must be a number, got {value!r}")
    value = float(value)
    if not math.isfinite(value) or not PARAM_MIN <= value <= PARAM_MAX:
        raise ValueError(
            f"{name} must be within [{PARAM_MIN}, {PARAM_MAX}], got {value!r}"
        )
    return value


@dataclass(frozen=True)
class AffectParameters:
    valence: float = 4.5
    arousal: float = 5.0
    selection_threshold: float = 3.2
    resolution: float = 4.8
    goal_directedness: float = 6.0
    securing_rate: float = 3.5

    def __post_init__(self):
        for f in fields(self):
            object.__setattr__(
                self, f.name, check_param_value(f.name, getattr(self, f.name))
            )

    def replace(self, name, value):
        """Return a new record with one field changed."""
        return replace(self, **{resolve_param_name(name): value})

    def to_payload(self):
        return {WIRE_NAMES[f.name]: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_payload(cls, payload):
        return cls(**{resolve_param_name(k): v for k, v in payload.items()})


def _read_intensity(payload, key):
    value = payload.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedResponse(f"Emotional state field {key!r} is missing or not a number")
    return float(value)


@dataclass(frozen=True)
class EmotionalState:
    anger: float = 1.0
    sadness: float = 1.0

    @classmethod
    def from_payload(cls, payload):
        """Decode a backend body. Raises MalformedResponse on anything partial."""
        if not isinstance(payload, dict):
            raise MalformedResponse(f"Expected a JSON object, got {type(payload).__name__}")
        return cls(
            anger=_read_intensity(payload, "anger"),
            sadness=_read_intensity(payload, "sadness"),
        )

    def to_dict(self):
        return {"anger": self.anger, "sadness": self.sadness}


def _utcnow():
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Message:
    text: str
    is_user: bool
    timestamp: datetime = field(default_factory=_utcnow)
    emotional_state: EmotionalState = None

    def to_dict(self):
        data = {
            "text": self.text,
            "is_user": self.is_user,
            "timestamp": self.timestamp.isoformat(),
            "emotional_state": None,
        }
        if self.emotional_state is not None:
            data["emotional_state"] = self.emotional_state.to_dict()
            data["emotional_label"] = classify(self.emotional_state)
        return data


class ConnectivityStatus:
    """True while the most recent call to the backend has failed."""

    def __init__(self):
        self.failed = False
        self.last_error = None

    def mark_failed(self, error):
        self.failed = True
        self.last_error = str(error)

    def mark_ok(self):
        self.failed = False
        self.last_error = None
