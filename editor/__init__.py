"""Editor package: book editing session, history, autosave and timers."""

from editor.scheduler import AsyncioScheduler, Debouncer, RecurringTask, Scheduler, VirtualClock
from editor.history import HistoryEngine, PageHistory
from editor.autosave import AutosaveScheduler
from editor.callbacks import EditorCallback, LoggingCallback, RecordingCallback
from editor.stats import BookStats, compute_stats
from editor.tree_editor import BookEditor
from editor.session import AppSession

__all__ = [
    "AsyncioScheduler",
    "Debouncer",
    "RecurringTask",
    "Scheduler",
    "VirtualClock",
    "HistoryEngine",
    "PageHistory",
    "AutosaveScheduler",
    "EditorCallback",
    "LoggingCallback",
    "RecordingCallback",
    "BookStats",
    "compute_stats",
    "BookEditor",
    "AppSession",
]
