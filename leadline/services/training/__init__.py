"""Training data export."""

from leadline.services.training.exporter import TrainingExporter, TrainingPair

__all__ = ["TrainingExporter", "TrainingPair"]
