"""Adaptive pace recommendations."""

from .difficulty import DIFFICULTY_RULES, DifficultyRule, difficulty_factor, match_difficulty_rule
from .recommender import PaceRecommender, plan_page_range
from .slack import SlackEstimate, SlackEstimator, ratio_delta, session_ratios, slack_from_ratios

__all__ = [
    "DIFFICULTY_RULES",
    "DifficultyRule",
    "difficulty_factor",
    "match_difficulty_rule",
    "PaceRecommender",
    "plan_page_range",
    "SlackEstimate",
    "SlackEstimator",
    "ratio_delta",
    "session_ratios",
    "slack_from_ratios",
]
