"""Split stored analysis text into its ANALYSIS / INSIGHTS sections."""

import re

from sliceboard.schemas.analysis import AnalysisSections

_ANALYSIS_RE = re.compile(r"ANALYSIS:\s*([\s\S]*?)(?=INSIGHTS:|$)", re.IGNORECASE)
_INSIGHTS_RE = re.compile(r"INSIGHTS:\s*([\s\S]*?)$", re.IGNORECASE)
_BLANK_LINES_RE = re.compile(r"(?:\n\s*){2,}")
_ROLE_LABEL_RE = re.compile(r"^(Analysis|Insights|Recommendations?):\s*", re.IGNORECASE)


def parse_analysis_content(text: str) -> AnalysisSections:
    if not text or not text.strip():
        return AnalysisSections(analysis="", insights="")

    analysis_match = _ANALYSIS_RE.search(text)
    insights_match = _INSIGHTS_RE.search(text)
    if analysis_match or insights_match:
        return AnalysisSections(
            analysis=analysis_match.group(1).strip() if analysis_match else "",
            insights=insights_match.group(1).strip() if insights_match else "",
        )

    # Older blobs: unlabeled paragraphs separated by blank lines.
    sections = [s for s in _BLANK_LINES_RE.split(text) if s.strip()]
    cleaned = [_ROLE_LABEL_RE.sub("", s).strip() for s in sections]
    cleaned = [s for s in cleaned if s]

    return AnalysisSections(
        analysis=cleaned[0] if cleaned else "",
        insights="\n\n".join(cleaned[1:]),
    )


def format_analysis_content(analysis: str, insights: str) -> str:
    return f"ANALYSIS:\n{analysis.strip()}\n\nINSIGHTS:\n{insights.strip()}"
