"""
Meter (tempo grid) edits.

Each edit is a pure Project -> Project transform applied through
ProjectHistory. Continuous edits (typing a tempo, nudging the offset) carry
a fusion tag so a burst of changes becomes a single undo step.
"""
import logging
import math
from dataclasses import replace
from typing import Any, Callable, Optional

from pianoscribe.core.constants import PULSES_PER_BEAT
from pianoscribe.core.history import ProjectHistory
from pianoscribe.core.models import Project, update_meter, with_meter

logger = logging.getLogger(__name__)

# Fields edited as free-form numbers fuse per field name
FUSED_FIELDS = ("bpm", "start_offset")
INTEGRAL_FIELDS = ("measure_length", "subdivision")


def round_offset(seconds: float) -> float:
    """Round to .01 milliseconds."""
    return round(seconds * 100000) / 100000


def round_bpm(bpm: float) -> float:
    """Round to .01 bpm."""
    return round(bpm * 100) / 100


def validate_field(name: str, value: Any) -> Optional[str]:
    """
    Check a meter field value.

    Returns:
        None if valid, otherwise a short description of the problem
    """
    if name not in FUSED_FIELDS + INTEGRAL_FIELDS:
        return f"unknown meter field {name!r}"
    if value is None or isinstance(value, bool):
        return "required"
    if name in INTEGRAL_FIELDS:
        if not isinstance(value, int):
            return "integral"
        if value <= 0:
            return "positive"
        if name == "subdivision" and PULSES_PER_BEAT % value != 0:
            return "validSubdivision"
    else:
        if not isinstance(value, (int, float)) or not math.isfinite(value):
            return "number"
        if name == "bpm" and value <= 0:
            return "positive"
    return None


class MeterEditor:
    """Meter settings actions bound to a project history."""

    def __init__(self, history: ProjectHistory):
        self.history = history

    def set_field(self, name: str, value: Any) -> bool:
        """
        Set one meter field.

        Invalid values and values equal to the stored one are ignored.

        Returns:
            True if an edit was issued
        """
        problem = validate_field(name, value)
        if problem is not None:
            logger.debug("Ignoring meter.%s = %r (%s)", name, value, problem)
            return False
        project = self.history.project
        if project is None or not project.meter.is_set:
            return False
        if getattr(project.meter, name) == value:
            return False
        if name in FUSED_FIELDS:
            value = float(value)
        self.history.modify_with_meter(
            lambda p: update_meter(p, **{name: value}),
            fusion_tag=name if name in FUSED_FIELDS else None,
        )
        return True

    def pick(self, offset: float, second_beat: float) -> bool:
        """
        Set the meter from two tapped times: beat 0 and beat 1.

        Keeps measure length and subdivision of an existing meter.
        """
        if second_beat <= offset:
            logger.debug("Ignoring meter pick: second beat %s not after offset %s", second_beat, offset)
            return False
        if self.history.project is None:
            return False

        def apply(p: Project) -> Project:
            return update_meter(
                p,
                state="active",
                start_offset=round_offset(offset),
                bpm=round_bpm(60 / (second_beat - offset)),
            )

        self.history.modify(apply)
        return True

    def shift_offset(self, seconds: float):
        """Move beat 0 by a dragged amount of time."""
        self.history.modify_with_meter(
            lambda p: update_meter(p, start_offset=round_offset(p.meter.start_offset + seconds))
        )

    def scale_tempo(self, log_ratio: float):
        """Multiply the tempo by exp(log_ratio) (tempo drag)."""
        self.history.modify_with_meter(
            lambda p: update_meter(p, bpm=round_bpm(p.meter.bpm * math.exp(log_ratio)))
        )

    def bump_offset(self, direction: int):
        """Move beat 0 by one whole beat forwards (+1) or backwards (-1)."""
        # TODO: keep notes at the same real time when the offset moves
        self.history.modify_with_meter(
            lambda p: update_meter(p, start_offset=p.meter.start_offset + direction * 60 / p.meter.bpm),
            fusion_tag="startOffsetBump",
        )

    def multiply_tempo(self, factor: int, direction: int):
        """
        Double/halve (etc.) the tempo, keeping measures the same length in time.

        The measure length only shrinks when it stays integral.
        """
        def apply(p: Project) -> Project:
            m = p.meter
            if direction == 1:
                return with_meter(p, replace(m, bpm=m.bpm * factor, measure_length=m.measure_length * factor))
            measure_length = m.measure_length // factor if m.measure_length % factor == 0 else m.measure_length
            return with_meter(p, replace(m, bpm=m.bpm / factor, measure_length=measure_length))

        self.history.modify_with_meter(apply)

    def toggle_lock(self, confirm_unlock: Callable[[], bool] = lambda: True):
        """
        Lock the meter, or unlock it after confirm_unlock() agrees.
        """
        project = self.history.project
        if project is None or not project.meter.is_set:
            return
        if project.meter.state == "locked":
            if confirm_unlock():
                self.history.modify(lambda p: update_meter(p, state="active"))
        else:
            self.history.modify(lambda p: update_meter(p, state="locked"))
