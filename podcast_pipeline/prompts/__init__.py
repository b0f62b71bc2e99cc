from .templates import (
    HIGHLIGHT_SYSTEM_PROMPT,
    HIGHLIGHT_TEMPLATE,
    SCRIPT_SYSTEM_PROMPT,
    SCRIPT_TEMPLATE,
    STYLE_GUIDANCE,
    SUMMARY_SYSTEM_PROMPT,
    SUMMARY_TEMPLATE,
    TITLE_SYSTEM_PROMPT,
    TITLE_TEMPLATE,
    TRANSCRIPT_ANALYSIS_SYSTEM_PROMPT,
    TRANSCRIPT_ANALYSIS_TEMPLATE,
    VIDEO_ANALYSIS_SYSTEM_PROMPT,
    VIDEO_ANALYSIS_TEMPLATE,
)

__all__ = [
    "HIGHLIGHT_SYSTEM_PROMPT",
    "HIGHLIGHT_TEMPLATE",
    "SCRIPT_SYSTEM_PROMPT",
    "SCRIPT_TEMPLATE",
    "STYLE_GUIDANCE",
    "SUMMARY_SYSTEM_PROMPT",
    "SUMMARY_TEMPLATE",
    "TITLE_SYSTEM_PROMPT",
    "TITLE_TEMPLATE",
    "TRANSCRIPT_ANALYSIS_SYSTEM_PROMPT",
    "TRANSCRIPT_ANALYSIS_TEMPLATE",
    "VIDEO_ANALYSIS_SYSTEM_PROMPT",
    "VIDEO_ANALYSIS_TEMPLATE",
]
