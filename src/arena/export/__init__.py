from .charting import render_match_timeline
from .service import ExportService

__all__ = ["ExportService", "render_match_timeline"]
