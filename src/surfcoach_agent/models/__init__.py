"""
Data Models
===========

Pydantic models and value objects for SurfCoachAgent.

Models:
    Provider:
        - QuotaDescriptor, ProviderConfig: Backend configuration

    Frame:
        - FrameSample: One captured frame (transient)

    Analysis:
        - SurferPosition, Rating, SurfAction, AnnotationType: Enumerations
        - AnnotationPosition, Annotation: Visual markers
        - FrameAnalysis: Normalized per-frame result

    Report:
        - KeyMoment, TechnicalBreakdown, Report: Aggregated run output
"""

from surfcoach_agent.models.provider import ProviderConfig, QuotaDescriptor
from surfcoach_agent.models.frame import FrameSample
from surfcoach_agent.models.analysis import (
    Annotation,
    AnnotationPosition,
    AnnotationType,
    FrameAnalysis,
    Rating,
    SurfAction,
    SurferPosition,
)
from surfcoach_agent.models.report import KeyMoment, Report, TechnicalBreakdown

__all__ = [
    # Provider
    "QuotaDescriptor",
    "ProviderConfig",
    # Frame
    "FrameSample",
    # Analysis
    "SurferPosition",
    "Rating",
    "SurfAction",
    "AnnotationType",
    "AnnotationPosition",
    "Annotation",
    "FrameAnalysis",
    # Report
    "KeyMoment",
    "TechnicalBreakdown",
    "Report",
]
