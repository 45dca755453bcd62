"""
Matcher Service - LLM-based CV / job matching.

Scores a CV against a job description from 0-100 and wraps each
analysis in the daily quota check.
"""

from .batch import run_batch
from .cv_loader import CVLoader
from .invoker import AnalysisInvoker
from .llm_matcher import LLMMatcher

__all__ = ["AnalysisInvoker", "CVLoader", "LLMMatcher", "run_batch"]
