"""
Avatar expression targets for the robot face.

The client animates its robot face toward these values whenever the emotion
label changes (eye openness 0-1.3, mouth curve -1..1, brow angularity, eye
scale, a short horizontal shake for Angry, and the stroke colour). Drawing and
interpolation happen client-side.
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict

from utils.face_metrics import EmotionState


@dataclass(frozen=True)
class AvatarExpression:
    left_eye_openness: float = 1.0
    right_eye_openness: float = 1.0
    mouth_curve: float = 0.0  # Positive = smile, negative = frown
    eye_angularity: float = 0.0  # Slanted brows
    eye_scale: float = 1.0
    shake: bool = False
    color: str = "#B2FF59"  # Lime

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        return {
            "leftEyeOpenness": d["left_eye_openness"],
            "rightEyeOpenness": d["right_eye_openness"],
            "mouthCurve": d["mouth_curve"],
            "eyeAngularity": d["eye_angularity"],
            "eyeScale": d["eye_scale"],
            "shake": d["shake"],
            "color": d["color"],
        }


_DEFAULT = AvatarExpression()

_EXPRESSIONS: Dict[EmotionState, AvatarExpression] = {
    EmotionState.IDLE: AvatarExpression(color="#BDBDBD"),
    EmotionState.SLEEP: AvatarExpression(left_eye_openness=0.05, right_eye_openness=0.05, color="#9E9E9E"),
    EmotionState.HAPPY: AvatarExpression(mouth_curve=0.8, color="#00E676"),
    EmotionState.ANGRY: AvatarExpression(mouth_curve=-0.5, eye_angularity=1.2, shake=True, color="#FF5252"),
    EmotionState.SURPRISED: AvatarExpression(
        left_eye_openness=1.3, right_eye_openness=1.3, mouth_curve=0.2, eye_scale=1.25, color="#40C4FF",
    ),
    # Only the left eye closes
    EmotionState.WINK: AvatarExpression(left_eye_openness=0.05, color="#FFD740"),
}


def expression_for(emotion: EmotionState) -> AvatarExpression:
    """Return the target expression; Neutral, Curious and Annoyed share the default face."""
    return _EXPRESSIONS.get(emotion, _DEFAULT)
