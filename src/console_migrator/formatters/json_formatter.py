"""JSON formatter for migration reports."""

import json

from ..models import MigrationReport
from .base import BaseFormatter


class JsonFormatter(BaseFormatter):
    """Render reports as JSON, identical in shape to ``report.json``."""

    def format(self, report: MigrationReport) -> str:
        return json.dumps(report.to_dict(), indent=2)
