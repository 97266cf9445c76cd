"""
Project stages - the five-step installation lifecycle and its display metadata
"""
from enum import IntEnum
from typing import Any, Dict, Optional


class ProjectStage(IntEnum):
    REQUIREMENTS = 1
    SURVEY = 2
    CONFIRMATION = 3
    INSTALLATION = 4
    HANDOVER = 5

    @property
    def label(self) -> str:
        return STAGE_INFO[self]["label"]

    @classmethod
    def parse(cls, value: Any) -> Optional["ProjectStage"]:
        """Return the stage for an int-like value, or None when it is not one of the five"""
        if isinstance(value, bool):
            return None
        try:
            return cls(int(value))
        except (TypeError, ValueError):
            return None


INITIAL_STAGE = ProjectStage.REQUIREMENTS
TERMINAL_STAGE = ProjectStage.HANDOVER

# Single source of truth for UI labels, colors and progress percentages
STAGE_INFO: Dict[ProjectStage, Dict[str, Any]] = {
    ProjectStage.REQUIREMENTS: {
        "label": "Requirements",
        "bg_color": "bg-blue-100",
        "text_color": "text-blue-800",
        "bar_color": "bg-primary",
        "percentage": 20,
    },
    ProjectStage.SURVEY: {
        "label": "Survey",
        "bg_color": "bg-violet-100",
        "text_color": "text-violet-800",
        "bar_color": "bg-secondary",
        "percentage": 40,
    },
    ProjectStage.CONFIRMATION: {
        "label": "Confirmation",
        "bg_color": "bg-yellow-100",
        "text_color": "text-yellow-800",
        "bar_color": "bg-yellow-500",
        "percentage": 60,
    },
    ProjectStage.INSTALLATION: {
        "label": "Installation",
        "bg_color": "bg-cyan-100",
        "text_color": "text-cyan-800",
        "bar_color": "bg-accent",
        "percentage": 80,
    },
    ProjectStage.HANDOVER: {
        "label": "Handover",
        "bg_color": "bg-green-100",
        "text_color": "text-green-800",
        "bar_color": "bg-green-600",
        "percentage": 100,
    },
}

UNKNOWN_STAGE_INFO: Dict[str, Any] = {
    "label": "Unknown",
    "bg_color": "bg-gray-100",
    "text_color": "text-gray-800",
    "bar_color": "bg-gray-500",
    "percentage": 0,
}


def get_stage_info(stage: Any) -> Dict[str, Any]:
    parsed = ProjectStage.parse(stage)
    if parsed is None:
        return dict(UNKNOWN_STAGE_INFO)
    return dict(STAGE_INFO[parsed])


def get_stage_percentage(stage: Any) -> int:
    return get_stage_info(stage)["percentage"]


def can_transition(current: int, target: int) -> bool:
    """Handover is reachable from anywhere; otherwise only one step forward or back"""
    if target == TERMINAL_STAGE:
        return True
    return abs(int(target) - int(current)) <= 1


def default_transition_note(target: ProjectStage) -> str:
    return f"Advanced to {target.label}"
