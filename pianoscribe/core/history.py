"""
Undo/redo history of project snapshots.

Every edit is a pure function Project -> Project. The history keeps the
resulting snapshots in a list with a current index:
- A new edit drops everything after the current index (no redo branches)
- Consecutive edits carrying the same fusion tag that arrive within the
  fusion window replace the current snapshot instead of adding one, so e.g.
  dragging a tempo slider produces a single undo step
"""
import logging
import time
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from pianoscribe.core.models import Project
from pianoscribe.core.persistence import ProjectFile, decode_project, encode_project
from pianoscribe.core.settings import Settings

logger = logging.getLogger(__name__)

# If two modifications are more than this many seconds apart, they are not merged
FUSION_WINDOW = 1.0

Transform = Callable[[Project], Project]


class ProjectHistory:
    """Owns the current project and its undo/redo history."""

    def __init__(self, settings: Optional[Settings] = None,
                 clock: Callable[[], float] = time.monotonic):
        """
        Args:
            settings: Source of the fusion window (defaults to FUSION_WINDOW)
            clock: Monotonic time source in seconds
        """
        self.fusion_window = settings.fusion_window if settings is not None else FUSION_WINDOW
        self._clock = clock

        # (snapshot, edit kept the selection valid)
        # invariant: not _history or 0 <= _current < len(_history)
        self._history: List[Tuple[Project, bool]] = []
        self._current = 0

        self._prev_fusion_tag: Optional[str] = None
        self._prev_mod_time: Optional[float] = None

        self._last_saved: Optional[Project] = None
        self._unsaved = False

        self._project_listeners: List[Callable[[Project], None]] = []
        self._unsaved_listeners: List[Callable[[bool], None]] = []
        self._selection_reset_listeners: List[Callable[[], None]] = []

    @property
    def project(self) -> Optional[Project]:
        """Current snapshot (None before the first project is opened)."""
        return self._history[self._current][0] if self._history else None

    @property
    def current_index(self) -> int:
        return self._current

    def __len__(self) -> int:
        return len(self._history)

    @property
    def is_unsaved(self) -> bool:
        return self._unsaved

    def new_project(self, project: Project):
        """Start a fresh history containing only project."""
        self._history = [(project, False)]
        self._current = 0
        self._prev_fusion_tag = None
        self._prev_mod_time = None
        logger.debug("New project with %d parts", len(project.parts))
        self._publish()
        self._reset_selection()

    def modify(self, transform: Transform, fusion_tag: Optional[str] = None,
               preserve_selection: bool = False):
        """
        Apply transform to the current project as a new undo step.

        Args:
            transform: Pure function producing the next snapshot
            fusion_tag: If the previous modify had the same tag and happened
                within the fusion window, the current snapshot is replaced
                instead of creating a new undo step
            preserve_selection: The edit keeps note indices stable, so the
                current selection stays meaningful
        """
        current = self.project
        if current is None:
            logger.debug("modify() ignored: no project")
            return

        next_project = transform(current)
        mod_time = self._clock()
        if (
            fusion_tag is not None
            and fusion_tag == self._prev_fusion_tag
            and self._prev_mod_time is not None
            and mod_time - self._prev_mod_time <= self.fusion_window
        ):
            last_preserve = self._history[self._current][1]
            self._history[self._current] = (next_project, preserve_selection and last_preserve)
            logger.debug("Fused edit %r into history entry %d", fusion_tag, self._current)
        else:
            self._current += 1
            del self._history[self._current:]
            self._history.append((next_project, preserve_selection))
            logger.debug("History entry %d added (tag=%r)", self._current, fusion_tag)

        # Always refresh so a chain of quick edits keeps fusing
        self._prev_fusion_tag = fusion_tag
        self._prev_mod_time = mod_time

        self._publish()
        if not preserve_selection:
            self._reset_selection()

    def modify_with_meter(self, transform: Transform, fusion_tag: Optional[str] = None,
                          preserve_selection: bool = False):
        """Like modify(), but only while the project has a tempo set."""
        current = self.project
        if current is None or not current.meter.is_set:
            logger.debug("modify_with_meter() ignored: meter not set")
            return
        self.modify(transform, fusion_tag, preserve_selection)

    def can_undo(self) -> bool:
        return self._current >= 1

    def can_redo(self) -> bool:
        return self._current <= len(self._history) - 2

    def undo(self):
        """Step back one snapshot. Does nothing if there is nothing to undo."""
        if not self.can_undo():
            return
        # An edit after undo never fuses with the one before
        self._prev_fusion_tag = None
        self._prev_mod_time = None
        self._current -= 1
        logger.debug("Undo to history entry %d", self._current)
        self._publish()
        if not self._history[self._current + 1][1]:
            self._reset_selection()

    def redo(self):
        """Step forward one snapshot. Does nothing if there is nothing to redo."""
        if not self.can_redo():
            return
        self._prev_fusion_tag = None
        self._prev_mod_time = None
        self._current += 1
        logger.debug("Redo to history entry %d", self._current)
        self._publish()
        if not self._history[self._current][1]:
            self._reset_selection()

    def mark_saved(self):
        """Remember the current snapshot as the saved one."""
        self._last_saved = self.project
        self._update_unsaved()

    # Persistence

    def load(self, data: bytes):
        """Replace the history with a project decoded from bytes."""
        self.new_project(decode_project(data))
        self.mark_saved()

    def dump(self) -> bytes:
        """Encode the current project."""
        if self.project is None:
            raise ValueError("No project loaded")
        return encode_project(self.project)

    def open_file(self, path: Path):
        """Load a project file and start a new history with it."""
        self.new_project(ProjectFile.load(path))
        self.mark_saved()

    def save_file(self, path: Path) -> Path:
        """Save the current project and mark it as saved."""
        if self.project is None:
            raise ValueError("No project loaded")
        saved_path = ProjectFile.save(self.project, path)
        self.mark_saved()
        return saved_path

    # Observers

    def subscribe_project(self, callback: Callable[[Project], None]) -> Callable[[], None]:
        """
        Call callback with the current project now and after every change.

        Returns:
            Function that removes the subscription
        """
        self._project_listeners.append(callback)
        if self.project is not None:
            callback(self.project)
        return lambda: self._project_listeners.remove(callback)

    def subscribe_unsaved(self, callback: Callable[[bool], None]) -> Callable[[], None]:
        """Call callback with the unsaved flag whenever it flips."""
        self._unsaved_listeners.append(callback)
        return lambda: self._unsaved_listeners.remove(callback)

    def subscribe_selection_reset(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Call callback whenever note indices may have changed meaning."""
        self._selection_reset_listeners.append(callback)
        return lambda: self._selection_reset_listeners.remove(callback)

    def _publish(self):
        project = self.project
        for callback in list(self._project_listeners):
            callback(project)
        self._update_unsaved()

    def _update_unsaved(self):
        unsaved = self.project is not self._last_saved
        if unsaved != self._unsaved:
            self._unsaved = unsaved
            for callback in list(self._unsaved_listeners):
                callback(unsaved)

    def _reset_selection(self):
        for callback in list(self._selection_reset_listeners):
            callback()
