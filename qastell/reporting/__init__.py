"""Report serializers.

HTML and summary HTML are available on every tier; JSON and SARIF are gated
by the license tier at generation time.
"""
from qastell.reporting.html_reporter import HtmlReporter, SummaryHtmlReporter
from qastell.reporting.json_reporter import JsonReporter
from qastell.reporting.sarif_reporter import SarifReporter

__all__ = [
    "HtmlReporter",
    "JsonReporter",
    "SarifReporter",
    "SummaryHtmlReporter",
]
