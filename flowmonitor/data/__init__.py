from .database import Database
from .models import FlowSessionRecord, InterventionRecord
from .repository import Repository

__all__ = ["Database", "FlowSessionRecord", "InterventionRecord", "Repository"]
