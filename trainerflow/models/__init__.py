from trainerflow.models.base import Base
from trainerflow.models.session_message import SessionMessage
from trainerflow.models.trainer_flow import TrainerFlow
from trainerflow.models.training_session import TrainingSession

__all__ = [
    "Base",
    "TrainerFlow",
    "TrainingSession",
    "SessionMessage",
]
