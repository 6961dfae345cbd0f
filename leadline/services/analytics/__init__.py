"""Per-turn timing and usage analytics."""

from leadline.services.analytics.recorder import AnalyticsRecorder, TurnAnalytics

__all__ = ["AnalyticsRecorder", "TurnAnalytics"]
