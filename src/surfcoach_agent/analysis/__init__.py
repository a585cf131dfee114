"""
Analysis Module
===============

Turns sampled frames into structured coaching output.

Components:
    - PromptBuilder: Canonical per-frame prompt
    - ResponseParser: Provider text → FrameAnalysis (default on failure)
    - AnnotationSynthesizer: Rule-based visual markers
    - AnalysisOrchestrator: Sequential sampling loop
    - ReportAggregator: FrameAnalysis sequence → scored Report

Design Philosophy:
    Provider failures are fatal to a run; unparseable replies are not.
    Everything downstream of the orchestrator is pure.
"""

from surfcoach_agent.analysis.annotations import AnnotationSynthesizer
from surfcoach_agent.analysis.orchestrator import AnalysisOrchestrator, RunMetrics
from surfcoach_agent.analysis.parser import ResponseParser, default_frame_analysis
from surfcoach_agent.analysis.prompt import ANALYSIS_LEVELS, PromptBuilder
from surfcoach_agent.analysis.report import (
    ReportAggregator,
    describe_score,
    mock_report,
)

__all__ = [
    "PromptBuilder",
    "ANALYSIS_LEVELS",
    "ResponseParser",
    "default_frame_analysis",
    "AnnotationSynthesizer",
    "AnalysisOrchestrator",
    "RunMetrics",
    "ReportAggregator",
    "describe_score",
    "mock_report",
]
