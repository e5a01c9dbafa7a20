"""Input collaborators: job enumeration, language labels, prompt and key loading."""

from pretackler.infrastructure.inputs.collector import (
    CollectionOptions,
    JobPlan,
    classify_channel,
    collect_jobs,
    count_lines,
    output_root_for,
    summary_file_name,
)
from pretackler.infrastructure.inputs.language import detect_language
from pretackler.infrastructure.inputs.loaders import load_api_key, load_prompt
from pretackler.infrastructure.inputs.messages import build_user_message

__all__ = [
    "CollectionOptions",
    "JobPlan",
    "build_user_message",
    "classify_channel",
    "collect_jobs",
    "count_lines",
    "detect_language",
    "load_api_key",
    "load_prompt",
    "output_root_for",
    "summary_file_name",
]
