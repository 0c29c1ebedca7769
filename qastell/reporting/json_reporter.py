"""JSON report (enterprise tier and above)."""
import json
from typing import TYPE_CHECKING

from qastell.licensing import require_feature


if TYPE_CHECKING:
    from qastell.results.model import AuditResults


class JsonReporter:
    feature = "json"

    def generate(self, results: "AuditResults") -> str:
        require_feature(results.tier, self.feature)
        return json.dumps(results.to_dict(), indent=2, sort_keys=True, default=str)
