"""Maps a continuous emotional state onto a human-readable label.

Both channels arrive on the backend's 0-7 scale and are rescaled to 0-5
before the thresholds are applied. Rules are checked top to bottom and the
first match wins, so anger outranks sadness.
"""

RAW_SCALE = 7.0
DISPLAY_SCALE = 5.0

VERY_AGITATED = "Very Agitated"
FRUSTRATED = "Frustrated"
VERY_SAD = "Very Sad"
MELANCHOLIC = "Melancholic"
CALM = "Calm"
NEUTRAL = "Neutral"

LABELS = (VERY_AGITATED, FRUSTRATED, VERY_SAD, MELANCHOLIC, CALM, NEUTRAL)


def normalize(raw):
    """Rescale a 0-7 intensity to the 0-5 display scale."""
    return (raw / RAW_SCALE) * DISPLAY_SCALE


def classify(state):
    """Return the label for an EmotionalState."""
    anger = normalize(state.anger)
    sadness = normalize(state.sadness)

    if anger > 4:
        return VERY_AGITATED
    if anger > 3:
        return FRUSTRATED
    if sadness > 4:
        return VERY_SAD
    if sadness > 3:
        return MELANCHOLIC
    if anger < 2 and sadness < 2:
        return CALM
    return NEUTRAL


def _percent(raw):
    return min(max(raw / RAW_SCALE * 100, 0.0), 100.0)


def describe(state):
    """Label plus the 0-5 levels and bar widths shown next to the sliders."""
    return {
        "label": classify(state),
        "anger_level": round(normalize(state.anger), 2),
        "sadness_level": round(normalize(state.sadness), 2),
        "anger_percent": _percent(state.anger),
        "sadness_percent": _percent(state.sadness),
    }
