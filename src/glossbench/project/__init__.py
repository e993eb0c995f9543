"""Project model, wire format, and conversion between them."""

from __future__ import annotations

from .exporter import convert_to_saved_project
from .importer import ImportReport, ReplayWarning, convert_from_saved_project, load_project_from_json
from .migrate import migrate_to_latest, migrate_v1_to_v2
from .models import Project, Segment, Token
from .storage import SavedProjectV2

__all__ = [
    "ImportReport",
    "Project",
    "ReplayWarning",
    "SavedProjectV2",
    "Segment",
    "Token",
    "convert_from_saved_project",
    "convert_to_saved_project",
    "load_project_from_json",
    "migrate_to_latest",
    "migrate_v1_to_v2",
]
