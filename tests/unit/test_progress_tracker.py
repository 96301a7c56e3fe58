"""
Unit tests for progress_tracker module.
"""

from unittest.mock import MagicMock, patch

from cost_estimator.models.costs import EstimationProgress
from cost_estimator.utils.progress_tracker import ProgressTracker


def event(step, progress, message="working"):
    return EstimationProgress(step=step, progress=progress, message=message)


class TestProgressTracker:
    """Test cases for ProgressTracker class."""

    def test_initialization(self):
        tracker = ProgressTracker(console=MagicMock())

        assert tracker.progress is None
        assert tracker.is_active() is False

    @patch("cost_estimator.utils.progress_tracker.Progress")
    def test_start_creates_progress_bar(self, mock_progress_class):
        # Arrange
        mock_progress = MagicMock()
        mock_progress_class.return_value = mock_progress
        tracker = ProgressTracker(console=MagicMock())

        # Act
        tracker.start("Estimating MIT")

        # Assert
        mock_progress.start.assert_called_once()
        mock_progress.add_task.assert_called_once_with(description="Estimating MIT", total=100)
        assert tracker.is_active() is True

    @patch("cost_estimator.utils.progress_tracker.Progress")
    def test_on_progress_sets_completed_and_message(self, mock_progress_class):
        # Arrange
        mock_progress = MagicMock()
        mock_progress.add_task.return_value = 7
        mock_progress_class.return_value = mock_progress
        tracker = ProgressTracker(console=MagicMock())
        tracker.start("Estimating MIT")

        # Act
        tracker.on_progress(event("living", 40, "Researching living costs"))

        # Assert
        mock_progress.update.assert_called_with(
            7, completed=40, description="Estimating MIT: Researching living costs"
        )

    @patch("cost_estimator.utils.progress_tracker.Progress")
    def test_progress_never_moves_backwards(self, mock_progress_class):
        # Arrange
        mock_progress_class.return_value = MagicMock()
        tracker = ProgressTracker(console=MagicMock())
        tracker.start("Run")

        # Act
        tracker.on_progress(event("living", 60))
        tracker.on_progress(event("tuition", 30))

        # Assert
        assert tracker.percent == 60

    def test_on_progress_ignored_when_inactive(self):
        tracker = ProgressTracker(console=MagicMock())

        tracker.on_progress(event("tuition", 10))

        assert tracker.percent == 0

    @patch("cost_estimator.utils.progress_tracker.Progress")
    def test_complete_stops_and_resets(self, mock_progress_class):
        # Arrange
        mock_progress = MagicMock()
        mock_progress_class.return_value = mock_progress
        console = MagicMock()
        tracker = ProgressTracker(console=console)
        tracker.start("Run")

        # Act
        tracker.complete()

        # Assert
        mock_progress.stop.assert_called_once()
        console.print.assert_called_once()
        assert tracker.is_active() is False

    @patch("cost_estimator.utils.progress_tracker.Progress")
    def test_abort_prints_reason(self, mock_progress_class):
        # Arrange
        mock_progress_class.return_value = MagicMock()
        console = MagicMock()
        tracker = ProgressTracker(console=console)
        tracker.start("Run")

        # Act
        tracker.abort("timed out")

        # Assert
        assert "timed out" in console.print.call_args[0][0]
        assert tracker.is_active() is False
