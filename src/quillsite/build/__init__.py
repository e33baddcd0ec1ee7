"""Build pipeline: content aggregation, page rendering, and cleaning."""

from quillsite.build.aggregator import BuildContext, aggregate, apply_site_defaults
from quillsite.build.orchestrator import SiteBuilder, discover_templates, output_path_for
from quillsite.build.report import BuildReport

__all__ = [
    "BuildContext",
    "BuildReport",
    "SiteBuilder",
    "aggregate",
    "apply_site_defaults",
    "discover_templates",
    "output_path_for",
]
