"""JSON formatter for hostguard."""

import json

from ..models import BatchResult
from .base import BaseFormatter


class JsonFormatter(BaseFormatter):
    """Render one self-describing record per diagnostic.

    Parse and read failures are records too (``parse-error`` and
    ``file-access-error``), so a consumer sees every input file that did
    not analyse cleanly.
    """

    def format(self, batch: BatchResult) -> str:
        data = [d.to_record() for d in batch.diagnostics]
        return json.dumps(data, indent=2)
