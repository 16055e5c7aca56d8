"""Technical indicators, sentiment and recommendations.

AnalysisService lives in reading_room.analysis.service; it is not
re-exported here because it depends on the services package.
"""

from reading_room.analysis.recommendation import rule_based_analysis
from reading_room.analysis.sentiment import analyze_sentiment, keyword_sentiment
from reading_room.analysis.technical import compute_indicators

__all__ = [
    "rule_based_analysis",
    "analyze_sentiment",
    "keyword_sentiment",
    "compute_indicators",
]
