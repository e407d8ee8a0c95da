from .aggregate import ProjectAggregate, aggregate_projects, build_summary
from .compare import compare_summaries
from .config import CONFIG_KEYS, SummaryConfig, config_from_overrides, config_to_dict, load_config
from .exclusion import ExclusionFilter
from .pipeline import PipelineResult, run_pipeline, summary_to_json
from .records import LineItem, find_duplicate_imports
from .resolver import ConflictDecision, IdentityResolver, ResolutionResult
from .values import latest_date, parse_boolean, parse_date, parse_money

__all__ = [
    "CONFIG_KEYS",
    "ConflictDecision",
    "ExclusionFilter",
    "IdentityResolver",
    "LineItem",
    "PipelineResult",
    "ProjectAggregate",
    "ResolutionResult",
    "SummaryConfig",
    "aggregate_projects",
    "build_summary",
    "compare_summaries",
    "config_from_overrides",
    "config_to_dict",
    "find_duplicate_imports",
    "latest_date",
    "load_config",
    "parse_boolean",
    "parse_date",
    "parse_money",
    "run_pipeline",
    "summary_to_json",
]
